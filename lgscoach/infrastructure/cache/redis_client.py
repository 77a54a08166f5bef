# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Redis client backing the persistent worker's durable storage.

All keys are prefixed with a namespace (``coach-cache:`` by default) so
the worker's cached identity, credentials and last-check timestamp live
apart from anything else in the same Redis database, and survive worker
restarts.

Example:
    redis = RedisClient.from_settings(settings)
    await redis.connect()
    await redis.set_json("coach-data", {"id": "c1"})
"""

import json
from typing import TYPE_CHECKING, Any, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError as BaseRedisError

from lgscoach.core.exceptions import CoachNotifyError

if TYPE_CHECKING:
    from lgscoach.core.config.settings import Settings


class RedisError(CoachNotifyError):
    """Exception raised for Redis operation failures.

    Attributes:
        original_error: The underlying Redis error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class RedisClient:
    """Async Redis client with namespaced keys and JSON helpers.

    Attributes:
        namespace: Prefix applied to every key.
    """

    def __init__(
        self,
        url: str,
        namespace: str,
        redis: Optional[Redis] = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: Redis connection URL.
            namespace: Key prefix.
            redis: Already constructed client (skips connect()).
        """
        self.namespace = namespace
        self._url = url
        self._redis: Optional[Redis] = redis

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RedisClient":
        """Create a client from application settings."""
        return cls(settings.redis.url, settings.worker.storage_namespace)

    async def connect(self) -> None:
        """Create the connection and verify it.

        Raises:
            RedisError: If connection fails.
        """
        if self._redis is not None:
            return
        try:
            self._redis = Redis.from_url(self._url, decode_responses=True)
            await self._redis.ping()
        except BaseRedisError as e:
            self._redis = None
            raise RedisError("Failed to connect to Redis", e) from e

    async def close(self) -> None:
        """Close the connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    def _ensure_connected(self) -> Redis:
        if self._redis is None:
            raise RedisError("Redis client not connected. Call connect() first.")
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[str]:
        """Get a string value.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            return await redis.get(self._key(key))
        except BaseRedisError as e:
            raise RedisError(f"Failed to get key: {key}", e) from e

    async def set(self, key: str, value: str) -> None:
        """Set a string value without expiry.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            await redis.set(self._key(key), value)
        except BaseRedisError as e:
            raise RedisError(f"Failed to set key: {key}", e) from e

    async def get_json(self, key: str) -> Optional[Any]:
        """Get and decode a JSON value. Undecodable values read as None."""
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    async def set_json(self, key: str, value: Any) -> None:
        """Encode and store a JSON value."""
        await self.set(key, json.dumps(value, ensure_ascii=False))

    async def delete(self, *keys: str) -> int:
        """Delete keys.

        Returns:
            Number of keys deleted.

        Raises:
            RedisError: If the operation fails.
        """
        if not keys:
            return 0
        redis = self._ensure_connected()
        try:
            return await redis.delete(*(self._key(k) for k in keys))
        except BaseRedisError as e:
            raise RedisError(f"Failed to delete keys: {keys}", e) from e

    async def ping(self) -> bool:
        """Check if Redis is reachable."""
        try:
            redis = self._ensure_connected()
            await redis.ping()
            return True
        except (RedisError, BaseRedisError):
            return False

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for RedisClient."""

import pytest

import lgscoach.infrastructure.cache as cache
from lgscoach.infrastructure.cache import RedisClient, RedisError


class TestRedisClient:
    """Tests for namespaced Redis access."""

    @pytest.mark.asyncio
    async def test_keys_are_namespaced(self, redis_client, fake_redis) -> None:
        await redis_client.set_json("coach-data", {"id": "c1", "fullName": "Koç Mehmet"})

        assert "coach-cache:coach-data" in fake_redis.data
        assert await redis_client.get_json("coach-data") == {"id": "c1", "fullName": "Koç Mehmet"}

    @pytest.mark.asyncio
    async def test_undecodable_json_reads_as_none(self, redis_client, fake_redis) -> None:
        fake_redis.data["coach-cache:coach-data"] = "{not json"

        assert await redis_client.get_json("coach-data") is None

    @pytest.mark.asyncio
    async def test_delete(self, redis_client) -> None:
        await redis_client.set("a", "1")

        assert await redis_client.delete("a", "b") == 1
        assert await redis_client.delete() == 0

    @pytest.mark.asyncio
    async def test_unconnected_client_raises(self) -> None:
        client = RedisClient("redis://localhost:6379/0", "coach-cache")

        with pytest.raises(RedisError):
            await client.get("coach-data")
        assert await client.ping() is False

    @pytest.mark.asyncio
    async def test_close_forgets_connection(self, redis_client) -> None:
        await redis_client.close()

        with pytest.raises(RedisError):
            await redis_client.get("coach-data")

    def test_no_process_wide_client(self) -> None:
        """Test storage is only reachable through an explicitly owned client."""
        assert cache.__all__ == ["RedisClient", "RedisError"]
        for name in ("init_redis", "get_redis", "close_redis"):
            assert not hasattr(cache, name)

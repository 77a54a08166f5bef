# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Durable storage of the persistent worker.

Everything the worker needs to resume after being torn down lives here,
never in memory: the coach identity, the backend credentials and the
timestamp of the newest notification already shown together with the
ids shown at exactly that timestamp.
"""

import logging
from datetime import datetime
from typing import Iterable

from pydantic import ValidationError

from lgscoach.infrastructure.cache.redis_client import RedisClient
from lgscoach.models.coaching import CoachIdentity
from lgscoach.utils.datetime import EPOCH, ensure_utc, parse_timestamp
from lgscoach.worker.messages import SupabaseCredentials

logger = logging.getLogger(__name__)

COACH_DATA_KEY = "coach-data"
CREDENTIALS_KEY = "supabase-credentials"
LAST_CHECK_KEY = "last-notification-check"
LAST_CHECK_IDS_KEY = "last-notification-ids"


class WorkerStorage:
    """Typed access to the worker's cached values."""

    def __init__(self, redis: RedisClient) -> None:
        self._redis = redis

    async def get_coach(self) -> CoachIdentity | None:
        data = await self._redis.get_json(COACH_DATA_KEY)
        if data is None:
            return None
        try:
            return CoachIdentity.model_validate(data)
        except ValidationError as e:
            logger.warning("Ignoring invalid cached coach data: %s", e)
            return None

    async def set_coach(self, coach: CoachIdentity) -> None:
        await self._redis.set_json(COACH_DATA_KEY, coach.model_dump(mode="json", by_alias=True))
        logger.info("Cached coach %s (%s)", coach.full_name, coach.id)

    async def get_credentials(self) -> SupabaseCredentials | None:
        data = await self._redis.get_json(CREDENTIALS_KEY)
        if data is None:
            return None
        try:
            return SupabaseCredentials.model_validate(data)
        except ValidationError as e:
            logger.warning("Ignoring invalid cached credentials: %s", e)
            return None

    async def set_credentials(self, credentials: SupabaseCredentials) -> None:
        await self._redis.set_json(CREDENTIALS_KEY, credentials.model_dump(by_alias=True))
        logger.info(
            "Cached backend credentials (url: %s, key: %s)",
            "set" if credentials.url else "missing",
            "set" if credentials.anon_key else "missing",
        )

    async def get_last_check(self) -> datetime:
        """Timestamp of the newest notification shown, or the epoch."""
        raw = await self._redis.get(LAST_CHECK_KEY)
        if raw is None:
            return EPOCH
        return parse_timestamp(raw)

    async def get_last_check_ids(self) -> set[str]:
        """Ids already shown whose created_at equals the last check."""
        data = await self._redis.get_json(LAST_CHECK_IDS_KEY)
        if not isinstance(data, list):
            return set()
        return {str(i) for i in data}

    async def set_last_check(self, value: datetime, ids: Iterable[str] = ()) -> None:
        await self._redis.set(LAST_CHECK_KEY, ensure_utc(value).isoformat())
        await self._redis.set_json(LAST_CHECK_IDS_KEY, sorted(ids))

    async def clear(self) -> None:
        """Forget everything, e.g. on logout."""
        await self._redis.delete(COACH_DATA_KEY, CREDENTIALS_KEY, LAST_CHECK_KEY, LAST_CHECK_IDS_KEY)
        logger.info("Worker storage cleared")

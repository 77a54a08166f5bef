# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

The hosted store is replaced by FakePostgrest, an in-memory table set
served through httpx.MockTransport, so the real PostgrestClient runs
unchanged against it. Redis is replaced by FakeRedis, and system
notifications by RecordingNotifier.
"""

import json
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Any

import httpx
import pytest

from lgscoach.infrastructure.cache.redis_client import RedisClient
from lgscoach.infrastructure.supabase.rest import PostgrestClient
from lgscoach.notifications.repository import NotificationRepository
from lgscoach.presentation.base import (
    NotificationPermission,
    PlatformNotification,
    PlatformNotifier,
)

REST_URL = "https://test.supabase.co/rest/v1"
BASE_TIME = datetime(2024, 7, 25, 10, 0, tzinfo=timezone.utc)


# =============================================================================
# Fakes
# =============================================================================


def _encode(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


class FakePostgrest:
    """In-memory PostgREST supporting eq/is filters, order and limit.

    Attributes:
        tables: Rows per table.
        failing: Tables whose requests answer 500.
        requests: Every request received.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.failing: set[str] = set()
        self.requests: list[httpx.Request] = []
        self._ids = count(1)
        self._ticks = count(0)

    def next_timestamp(self) -> str:
        return (BASE_TIME + timedelta(seconds=next(self._ticks))).isoformat()

    def add(self, table: str, **row: Any) -> dict[str, Any]:
        """Insert a row directly, as another client would."""
        row.setdefault("id", str(next(self._ids)))
        row.setdefault("created_at", self.next_timestamp())
        self.tables[table].append(row)
        return row

    @staticmethod
    def _matches(row: dict[str, Any], filters: dict[str, str]) -> bool:
        for column, expression in filters.items():
            op, _, raw = expression.partition(".")
            if op == "eq" and _encode(row.get(column)) != raw:
                return False
            if op == "is" and raw == "null" and row.get(column) is not None:
                return False
        return True

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        table = request.url.path.rsplit("/", 1)[-1]
        if table in self.failing:
            return httpx.Response(500, json={"message": "internal error"})

        params = dict(request.url.params)
        filters = {k: v for k, v in params.items() if k not in ("select", "order", "limit")}
        rows = [r for r in self.tables[table] if self._matches(r, filters)]

        if request.method == "GET":
            if "order" in params:
                column, _, direction = params["order"].partition(".")
                rows = sorted(rows, key=lambda r: _encode(r.get(column)), reverse=direction == "desc")
            if "limit" in params:
                rows = rows[: int(params["limit"])]
            return httpx.Response(200, json=rows)

        body = json.loads(request.content) if request.content else None
        if request.method == "POST":
            created = [self.add(table, **dict(item)) for item in (body if isinstance(body, list) else [body])]
            return httpx.Response(201, json=created)
        if request.method == "PATCH":
            for row in rows:
                row.update(body)
            return httpx.Response(200, json=rows)
        return httpx.Response(405)


class FakeRedis:
    """The subset of redis.asyncio.Redis used by RedisClient."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self.data[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


class RecordingNotifier(PlatformNotifier):
    """Platform notifier that records deliveries."""

    def __init__(self, grant: bool = True) -> None:
        super().__init__()
        self.grant = grant
        self.delivered: list[PlatformNotification] = []
        self.permission_requests = 0

    async def _request_permission(self) -> NotificationPermission:
        self.permission_requests += 1
        return NotificationPermission.GRANTED if self.grant else NotificationPermission.DENIED

    async def _deliver(self, notification: PlatformNotification) -> None:
        self.delivered.append(notification)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_store() -> FakePostgrest:
    """Provide an empty in-memory store."""
    return FakePostgrest()


@pytest.fixture
def rest_client(fake_store: FakePostgrest) -> PostgrestClient:
    """Provide a REST client wired to the in-memory store."""
    return PostgrestClient(
        rest_url=REST_URL,
        api_key="anon-key",
        transport=httpx.MockTransport(fake_store.handler),
    )


@pytest.fixture
def repository(rest_client: PostgrestClient) -> NotificationRepository:
    """Provide a notification repository over the in-memory store."""
    return NotificationRepository(rest_client)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_client(fake_redis: FakeRedis) -> RedisClient:
    """Provide a connected RedisClient backed by FakeRedis."""
    return RedisClient("redis://localhost:6379/0", "coach-cache", redis=fake_redis)


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Provide a notifier whose permission request is granted."""
    return RecordingNotifier(grant=True)


@pytest.fixture
def denied_notifier() -> RecordingNotifier:
    """Provide a notifier whose permission request is denied."""
    return RecordingNotifier(grant=False)


@pytest.fixture
def coach_id() -> str:
    return "coach-1"


@pytest.fixture
def seeded_store(fake_store: FakePostgrest, coach_id: str) -> FakePostgrest:
    """Store with one coach and student Ayşe."""
    fake_store.add("users", id="coach-1", full_name="Koç Mehmet", role="coach")
    fake_store.add("users", id="student-1", full_name="Ayşe", role="student", coach_id=coach_id)
    fake_store.add("users", id="student-2", full_name="Ali", role="student", coach_id=None)
    return fake_store


def notification_row(
    store: FakePostgrest,
    coach_id: str = "coach-1",
    title: str = "🔔 Test Bildirimi",
    is_read: bool = False,
    **extra: Any,
) -> dict[str, Any]:
    """Add a test-kind notification row to the store."""
    return store.add(
        "notifications",
        coach_id=coach_id,
        type="test",
        title=title,
        message="Bildirimler çalışıyor",
        data={"kind": "test", "note": ""},
        is_read=is_read,
        **extra,
    )


@pytest.fixture
def add_notification(fake_store: FakePostgrest):
    """Factory adding notification rows to the store."""

    def _add(**kwargs: Any) -> dict[str, Any]:
        return notification_row(fake_store, **kwargs)

    return _add


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the realtime change-feed client.

A local aiohttp websocket server plays the realtime service.
"""

import asyncio
import json
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from lgscoach.core.exceptions import SubscriptionError
from lgscoach.infrastructure.supabase.realtime import RealtimeClient


class RealtimeServer:
    """Scripted Phoenix channel server."""

    def __init__(self) -> None:
        self.accept = True
        self.inserts: list[dict[str, Any]] = []
        self.close_after_join = False
        self.frames: list[dict[str, Any]] = []
        self.query: dict[str, str] = {}

    async def handler(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.query = dict(request.query)

        async for msg in ws:
            frame = json.loads(msg.data)
            self.frames.append(frame)
            if frame["event"] != "phx_join":
                continue
            await ws.send_json(
                {
                    "topic": frame["topic"],
                    "event": "phx_reply",
                    "payload": {"status": "ok" if self.accept else "error", "response": {}},
                    "ref": frame["ref"],
                }
            )
            for record in self.inserts:
                await ws.send_json(
                    {
                        "topic": frame["topic"],
                        "event": "postgres_changes",
                        "payload": {"data": {"type": "INSERT", "record": record}},
                        "ref": None,
                    }
                )
            if self.close_after_join:
                await ws.close()
                break
        return ws

    def events(self, name: str) -> list[dict[str, Any]]:
        return [f for f in self.frames if f["event"] == name]


@pytest.fixture
def realtime_server() -> RealtimeServer:
    return RealtimeServer()


@pytest_asyncio.fixture
async def realtime_url(realtime_server):
    """Start the scripted server and yield its websocket URL."""
    app = web.Application()
    app.router.add_get("/realtime/v1/websocket", realtime_server.handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    yield str(server.make_url("/realtime/v1/websocket"))
    await server.close()


@pytest.fixture
def client(realtime_url) -> RealtimeClient:
    return RealtimeClient(realtime_url, api_key="anon-key", join_timeout=2.0)


async def wait_for(predicate, timeout: float = 2.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout)


class TestSubscribeInserts:
    """Tests for RealtimeClient.subscribe_inserts."""

    @pytest.mark.asyncio
    async def test_join_filters_by_column(self, client, realtime_server) -> None:
        """Test the join asks for filtered INSERT events only."""
        subscription = await client.subscribe_inserts(
            "notifications", "coach_id", "coach-1", on_insert=_noop, on_drop=_noop
        )

        join = realtime_server.events("phx_join")[0]
        change = join["payload"]["config"]["postgres_changes"][0]
        assert change == {
            "event": "INSERT",
            "schema": "public",
            "table": "notifications",
            "filter": "coach_id=eq.coach-1",
        }
        assert join["topic"] == subscription.topic
        assert realtime_server.query["apikey"] == "anon-key"
        assert subscription.is_active
        await subscription.unsubscribe()

    @pytest.mark.asyncio
    async def test_inserts_dispatched(self, client, realtime_server) -> None:
        realtime_server.inserts = [{"id": "1"}, {"id": "2"}]
        received: list[dict[str, Any]] = []

        async def on_insert(row):
            received.append(row)

        subscription = await client.subscribe_inserts(
            "notifications", "coach_id", "coach-1", on_insert=on_insert, on_drop=_noop
        )
        await wait_for(lambda: len(received) == 2)

        assert [r["id"] for r in received] == ["1", "2"]
        await subscription.unsubscribe()

    @pytest.mark.asyncio
    async def test_rejected_join_raises(self, client, realtime_server) -> None:
        realtime_server.accept = False

        with pytest.raises(SubscriptionError):
            await client.subscribe_inserts(
                "notifications", "coach_id", "coach-1", on_insert=_noop, on_drop=_noop
            )

    @pytest.mark.asyncio
    async def test_unreachable_service_raises(self) -> None:
        client = RealtimeClient("http://127.0.0.1:1/realtime/v1/websocket", api_key="k")

        with pytest.raises(SubscriptionError):
            await client.subscribe_inserts(
                "notifications", "coach_id", "coach-1", on_insert=_noop, on_drop=_noop
            )

    @pytest.mark.asyncio
    async def test_server_close_reports_drop_once(self, client, realtime_server) -> None:
        """Test a closed socket invokes the drop handler exactly once."""
        realtime_server.close_after_join = True
        drops: list[SubscriptionError] = []

        async def on_drop(error):
            drops.append(error)

        subscription = await client.subscribe_inserts(
            "notifications", "coach_id", "coach-1", on_insert=_noop, on_drop=on_drop
        )
        await wait_for(lambda: drops)
        await subscription.unsubscribe()

        assert len(drops) == 1
        assert not subscription.is_active

    @pytest.mark.asyncio
    async def test_unsubscribe_leaves_without_drop(self, client, realtime_server) -> None:
        drops: list[SubscriptionError] = []

        async def on_drop(error):
            drops.append(error)

        subscription = await client.subscribe_inserts(
            "notifications", "coach_id", "coach-1", on_insert=_noop, on_drop=on_drop
        )
        await subscription.unsubscribe()
        await subscription.unsubscribe()
        await wait_for(lambda: realtime_server.events("phx_leave"))

        assert drops == []
        assert not subscription.is_active


async def _noop(*args) -> None:
    return None

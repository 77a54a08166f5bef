# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Realtime change-feed client for the hosted store.

The realtime service speaks the Phoenix channel protocol over a
websocket. A subscription joins one topic with a ``postgres_changes``
config so the server only forwards INSERT events on one table that
match a column filter, e.g. ``coach_id=eq.<coach>``.

Message flow:
1. ``phx_join`` with the change config, answered by ``phx_reply``
   carrying ``status: ok`` (or an error).
2. ``postgres_changes`` events whose ``payload.data.record`` is the
   inserted row.
3. ``heartbeat`` on the ``phoenix`` topic every 25 seconds.
4. ``phx_error``/``phx_close``, a ``system`` error or a closed socket
   end the subscription; the drop handler is invoked once.

Example:
    client = RealtimeClient(realtime_url, api_key)
    subscription = await client.subscribe_inserts(
        table="notifications",
        column="coach_id",
        value=coach_id,
        on_insert=handle_row,
        on_drop=handle_drop,
    )
    ...
    await subscription.unsubscribe()
"""

import asyncio
import json
import logging
from itertools import count
from typing import TYPE_CHECKING, Any, Awaitable, Callable

import aiohttp

from lgscoach.core.exceptions import SubscriptionError

if TYPE_CHECKING:
    from lgscoach.core.config.settings import Settings

logger = logging.getLogger(__name__)

InsertHandler = Callable[[dict[str, Any]], Awaitable[None]]
DropHandler = Callable[[SubscriptionError], Awaitable[None]]

PHOENIX_TOPIC = "phoenix"
DEFAULT_HEARTBEAT_INTERVAL = 25.0


class RealtimeSubscription:
    """An open realtime channel delivering INSERT events.

    Created by RealtimeClient.subscribe_inserts(); owns the websocket,
    its reader task and its heartbeat task.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        ws: aiohttp.ClientWebSocketResponse,
        topic: str,
        on_insert: InsertHandler,
        on_drop: DropHandler,
        refs: "count[int]",
        heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
    ) -> None:
        self.topic = topic
        self._session = session
        self._ws = ws
        self._on_insert = on_insert
        self._on_drop = on_drop
        self._refs = refs
        self._heartbeat_interval = heartbeat_interval
        self._reader: asyncio.Task | None = None
        self._heartbeat: asyncio.Task | None = None
        self._closing = False
        self._dropped = False

    @property
    def is_active(self) -> bool:
        """Whether the channel is still open and not being torn down."""
        return not (self._closing or self._dropped or self._ws.closed)

    def start(self) -> None:
        """Start the reader and heartbeat tasks."""
        self._reader = asyncio.create_task(self._read_loop(), name=f"realtime-reader:{self.topic}")
        self._heartbeat = asyncio.create_task(
            self._heartbeat_loop(), name=f"realtime-heartbeat:{self.topic}"
        )

    async def _send(self, topic: str, event: str, payload: dict[str, Any]) -> None:
        await self._ws.send_str(
            json.dumps(
                {
                    "topic": topic,
                    "event": event,
                    "payload": payload,
                    "ref": str(next(self._refs)),
                }
            )
        )

    async def _heartbeat_loop(self) -> None:
        try:
            while not self._ws.closed:
                await asyncio.sleep(self._heartbeat_interval)
                await self._send(PHOENIX_TOPIC, "heartbeat", {})
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("Realtime heartbeat stopped for %s: %s", self.topic, e)

    async def _read_loop(self) -> None:
        reason = "socket closed"
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    stop_reason = await self._handle_message(json.loads(msg.data))
                    if stop_reason:
                        reason = stop_reason
                        break
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    reason = f"socket error: {self._ws.exception()}"
                    break
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reason = f"reader failed: {e}"
            logger.error("Realtime reader failed for %s: %s", self.topic, e, exc_info=True)

        await self._drop(reason)

    async def _handle_message(self, message: dict[str, Any]) -> str | None:
        """Dispatch one frame. Returns a reason string when the channel ended."""
        if message.get("topic") != self.topic:
            return None

        event = message.get("event")
        payload = message.get("payload") or {}

        if event == "postgres_changes":
            data = payload.get("data") or {}
            if data.get("type") == "INSERT" and data.get("record"):
                try:
                    await self._on_insert(data["record"])
                except Exception as e:
                    logger.error(
                        "Realtime insert handler failed for %s: %s",
                        self.topic,
                        e,
                        exc_info=True,
                    )
            return None

        if event in ("phx_error", "phx_close"):
            return event

        if event == "system" and payload.get("status") == "error":
            return f"system error: {payload.get('message', 'unknown')}"

        return None

    async def _drop(self, reason: str) -> None:
        if self._closing or self._dropped:
            return
        self._dropped = True
        logger.warning("Realtime channel %s dropped: %s", self.topic, reason)
        await self._teardown(cancel_reader=False)
        try:
            await self._on_drop(SubscriptionError(f"Realtime channel dropped: {reason}"))
        except Exception as e:
            logger.error("Realtime drop handler failed: %s", e, exc_info=True)

    async def _teardown(self, cancel_reader: bool) -> None:
        tasks = [self._heartbeat]
        if cancel_reader:
            tasks.append(self._reader)
        for task in tasks:
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        if not self._ws.closed:
            await self._ws.close()
        await self._session.close()

    async def unsubscribe(self) -> None:
        """Leave the channel and close the socket. Safe to call twice."""
        if self._closing:
            return
        self._closing = True
        if not self._ws.closed and not self._dropped:
            try:
                await self._send(self.topic, "phx_leave", {})
            except Exception as e:
                logger.debug("phx_leave failed for %s: %s", self.topic, e)
        await self._teardown(cancel_reader=True)
        logger.info("Realtime channel %s closed", self.topic)


class RealtimeClient:
    """Opens filtered INSERT subscriptions on the realtime service.

    Attributes:
        realtime_url: Websocket endpoint.
        schema: Database schema of the watched tables.
        join_timeout: Seconds to wait for the join reply.
    """

    def __init__(
        self,
        realtime_url: str,
        api_key: str,
        schema: str = "public",
        join_timeout: float = 10.0,
        heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
    ) -> None:
        self.realtime_url = realtime_url
        self.schema = schema
        self.join_timeout = join_timeout
        self.heartbeat_interval = heartbeat_interval
        self._api_key = api_key
        self._refs = count(1)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RealtimeClient":
        """Create a client from application settings."""
        return cls(
            realtime_url=settings.supabase.realtime_url,
            api_key=settings.supabase.anon_key.get_secret_value(),
            schema=settings.supabase.schema_name,
            join_timeout=settings.delivery.realtime_join_timeout,
        )

    async def subscribe_inserts(
        self,
        table: str,
        column: str,
        value: str,
        on_insert: InsertHandler,
        on_drop: DropHandler,
    ) -> RealtimeSubscription:
        """Subscribe to INSERT events on table rows where column equals value.

        Args:
            table: Watched table.
            column: Filter column, applied server-side.
            value: Filter value.
            on_insert: Called with each inserted row.
            on_drop: Called once if the channel ends without unsubscribe().

        Returns:
            The open subscription.

        Raises:
            SubscriptionError: If the socket cannot be opened or the join
                is rejected or not acknowledged in time.
        """
        topic = f"realtime:{table}-{column}-{value}"
        session = aiohttp.ClientSession()
        try:
            ws = await session.ws_connect(
                self.realtime_url,
                params={"apikey": self._api_key, "vsn": "1.0.0"},
            )
        except (aiohttp.ClientError, OSError) as e:
            await session.close()
            raise SubscriptionError(
                f"Could not connect to realtime service: {e}",
                details={"topic": topic},
            ) from e

        join_ref = str(next(self._refs))
        join = {
            "topic": topic,
            "event": "phx_join",
            "payload": {
                "config": {
                    "broadcast": {"self": False},
                    "presence": {"key": ""},
                    "postgres_changes": [
                        {
                            "event": "INSERT",
                            "schema": self.schema,
                            "table": table,
                            "filter": f"{column}=eq.{value}",
                        }
                    ],
                },
                "access_token": self._api_key,
            },
            "ref": join_ref,
            "join_ref": join_ref,
        }

        try:
            await ws.send_str(json.dumps(join))
            reply = await asyncio.wait_for(
                self._await_reply(ws, topic, join_ref),
                timeout=self.join_timeout,
            )
        except (asyncio.TimeoutError, aiohttp.ClientError, ConnectionError) as e:
            await ws.close()
            await session.close()
            raise SubscriptionError(
                f"Realtime join for {topic} not acknowledged: {e!r}",
                details={"topic": topic},
            ) from e

        status = (reply.get("payload") or {}).get("status")
        if status != "ok":
            await ws.close()
            await session.close()
            raise SubscriptionError(
                f"Realtime join for {topic} rejected",
                details={"topic": topic, "reply": reply.get("payload")},
            )

        subscription = RealtimeSubscription(
            session=session,
            ws=ws,
            topic=topic,
            on_insert=on_insert,
            on_drop=on_drop,
            refs=self._refs,
            heartbeat_interval=self.heartbeat_interval,
        )
        subscription.start()
        logger.info("Realtime channel %s joined", topic)
        return subscription

    async def _await_reply(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        topic: str,
        ref: str,
    ) -> dict[str, Any]:
        async for msg in ws:
            if msg.type != aiohttp.WSMsgType.TEXT:
                break
            message = json.loads(msg.data)
            if (
                message.get("topic") == topic
                and message.get("event") == "phx_reply"
                and message.get("ref") == ref
            ):
                return message
        raise ConnectionError("socket closed before join reply")

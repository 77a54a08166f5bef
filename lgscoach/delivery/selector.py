# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Foreground delivery of a coach's unread notifications.

DeliveryChannelSelector keeps the page's list of unread notifications in
sync with the store through the cheapest mechanism that works, as an
explicit state machine:

    INITIALIZING ──seed read──> SUBSCRIBING
    SUBSCRIBING ──joined──> REALTIME_ACTIVE
    SUBSCRIBING ──failed──> POLLING_ACTIVE
    REALTIME_ACTIVE ──dropped──> POLLING_ACTIVE
    any ──stop()──> STOPPED

While realtime is active a slower safety poll runs alongside it. A
visibility re-sync may run in any active state. Every path funnels into
_deliver(), where membership in the cursor's delivered ids is checked
and recorded before presentation begins, so concurrent paths never
present the same record twice.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from pydantic import ValidationError

from lgscoach.core.exceptions import CoachNotifyError, SubscriptionError
from lgscoach.delivery.cursor import DeliveryCursor
from lgscoach.models.notification import NotificationPayload, NotificationRecord
from lgscoach.notifications.repository import NOTIFICATIONS_TABLE, NotificationRepository

logger = logging.getLogger(__name__)


class DeliveryState(str, Enum):
    """States of a delivery session."""

    INITIALIZING = "initializing"
    SUBSCRIBING = "subscribing"
    REALTIME_ACTIVE = "realtime_active"
    POLLING_ACTIVE = "polling_active"
    STOPPED = "stopped"


class Subscription(Protocol):
    async def unsubscribe(self) -> None: ...


class RealtimeSource(Protocol):
    """Anything that can open a filtered INSERT subscription."""

    async def subscribe_inserts(
        self,
        table: str,
        column: str,
        value: str,
        on_insert: Callable[[dict[str, Any]], Awaitable[None]],
        on_drop: Callable[[SubscriptionError], Awaitable[None]],
    ) -> Subscription: ...


class Presenter(Protocol):
    async def present(
        self,
        title: str,
        body: str,
        tag: str | None = None,
        payload: NotificationPayload | None = None,
    ) -> None: ...


class DeliveryChannelSelector:
    """Delivers a coach's notifications to the running page.

    Attributes:
        coach_id: Recipient whose notifications are delivered.
        cursor: Delivered ids and newest delivered timestamp.
    """

    def __init__(
        self,
        coach_id: str,
        repository: NotificationRepository,
        presenter: Presenter,
        realtime: RealtimeSource | None = None,
        poll_interval: float = 10.0,
        safety_poll_interval: float | None = 30.0,
    ) -> None:
        """Initialize the selector.

        Args:
            coach_id: Recipient coach.
            repository: Notification table access.
            presenter: Renders delivered records.
            realtime: Realtime source; None goes straight to polling.
            poll_interval: Fallback polling cadence in seconds.
            safety_poll_interval: Cadence of the auxiliary poll while
                realtime is active; None disables it.
        """
        self.coach_id = coach_id
        self.cursor = DeliveryCursor()
        self._repository = repository
        self._presenter = presenter
        self._realtime = realtime
        self._poll_interval = poll_interval
        self._safety_poll_interval = safety_poll_interval

        self._state = DeliveryState.INITIALIZING
        self._notifications: list[NotificationRecord] = []
        self._subscription: Subscription | None = None
        self._poll_task: asyncio.Task | None = None

    @property
    def state(self) -> DeliveryState:
        return self._state

    @property
    def notifications(self) -> list[NotificationRecord]:
        """Unread notifications known to this session, newest first."""
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return len(self._notifications)

    def _transition(self, state: DeliveryState) -> None:
        logger.info(
            "Delivery for coach %s: %s -> %s",
            self.coach_id,
            self._state.value,
            state.value,
        )
        self._state = state

    async def start(self) -> None:
        """Seed from the store, then open the best available channel."""
        if self._state != DeliveryState.INITIALIZING:
            raise CoachNotifyError(
                "Delivery session already started",
                details={"state": self._state.value},
            )

        delivered = await self.sync()
        logger.info("Seeded %d unread notifications for coach %s", delivered, self.coach_id)
        if self._state != DeliveryState.INITIALIZING:
            # stop() ran during the seed read
            return

        self._transition(DeliveryState.SUBSCRIBING)
        if self._realtime is None:
            self._enter_polling()
            return

        try:
            subscription = await self._realtime.subscribe_inserts(
                table=NOTIFICATIONS_TABLE,
                column="coach_id",
                value=self.coach_id,
                on_insert=self._on_insert,
                on_drop=self._on_drop,
            )
        except Exception as e:
            logger.warning(
                "Realtime unavailable for coach %s, falling back to polling: %s",
                self.coach_id,
                e,
            )
            if self._state == DeliveryState.SUBSCRIBING:
                self._enter_polling()
            return

        if self._state != DeliveryState.SUBSCRIBING:
            # stop() ran while the join was in flight
            await subscription.unsubscribe()
            return

        self._subscription = subscription
        self._transition(DeliveryState.REALTIME_ACTIVE)
        if self._safety_poll_interval:
            self._start_poll_task(self._safety_poll_interval, "safety-poll")
        # rows inserted between the seed read and the join
        await self.sync()

    def _enter_polling(self) -> None:
        self._transition(DeliveryState.POLLING_ACTIVE)
        self._start_poll_task(self._poll_interval, "poll")

    def _start_poll_task(self, interval: float, name: str) -> None:
        self._cancel_poll_task()
        self._poll_task = asyncio.create_task(
            self._poll_loop(interval),
            name=f"delivery-{name}:{self.coach_id}",
        )

    def _cancel_poll_task(self) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()
        self._poll_task = None

    async def _poll_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sync()
            except Exception as e:
                logger.error("Notification poll failed for coach %s: %s", self.coach_id, e, exc_info=True)

    async def sync(self) -> int:
        """Fetch unread notifications and present the unseen ones.

        Used by the seed read, both polls and the visibility re-sync.

        Returns:
            Number of records presented by this call.
        """
        records = await self._repository.get_unread_notifications(self.coach_id)
        delivered = 0
        for record in records:
            if await self._deliver(record):
                delivered += 1
        return delivered

    async def _on_insert(self, row: dict[str, Any]) -> None:
        try:
            record = NotificationRecord.from_row(row)
        except ValidationError as e:
            logger.warning("Ignoring malformed realtime row %s: %s", row.get("id"), e)
            return
        if record.recipient_id != self.coach_id or record.is_read:
            return
        await self._deliver(record)

    async def _on_drop(self, error: SubscriptionError) -> None:
        if self._state != DeliveryState.REALTIME_ACTIVE:
            return
        logger.warning("Realtime dropped for coach %s, polling instead: %s", self.coach_id, error)
        self._subscription = None
        self._enter_polling()

    async def _deliver(self, record: NotificationRecord) -> bool:
        if self._state == DeliveryState.STOPPED or not self.cursor.mark(record):
            return False

        self._notifications.append(record)
        self._notifications.sort(key=lambda r: r.created_at, reverse=True)
        try:
            await self._presenter.present(
                record.title,
                record.message,
                tag=record.tag,
                payload=record.payload,
            )
        except Exception as e:
            logger.error("Presenting notification %s failed: %s", record.id, e, exc_info=True)
        return True

    async def acknowledge(self, notification_id: str) -> bool:
        """Mark a notification read and drop it from the unread list.

        Returns:
            Whether the store acknowledged it.
        """
        ok = await self._repository.mark_notification_as_read(notification_id)
        if ok:
            self._notifications = [r for r in self._notifications if r.id != notification_id]
        return ok

    async def stop(self) -> None:
        """Stop timers and close the realtime channel. Idempotent."""
        if self._state == DeliveryState.STOPPED:
            return
        self._transition(DeliveryState.STOPPED)

        task = self._poll_task
        self._cancel_poll_task()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.unsubscribe()

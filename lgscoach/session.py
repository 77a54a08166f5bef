# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""A coach's page session: foreground delivery wired to the worker.

Opening a session hands the coach identity and backend credentials to
the persistent worker, then starts foreground delivery. Closing it stops
only the foreground: the worker keeps running for when no page is open.

Example:
    session = CoachSession.from_settings(settings, coach, bridge=bridge)
    await session.open()
    ...
    await session.set_visible(False)
    await session.acknowledge(notification_id)
    await session.close()
"""

import logging

from lgscoach.core.config.settings import Settings
from lgscoach.delivery.selector import DeliveryChannelSelector, RealtimeSource
from lgscoach.delivery.visibility import VisibilityCoordinator
from lgscoach.infrastructure.supabase.realtime import RealtimeClient
from lgscoach.infrastructure.supabase.rest import PostgrestClient
from lgscoach.models.coaching import CoachIdentity
from lgscoach.models.notification import NotificationRecord
from lgscoach.notifications.repository import NotificationRepository
from lgscoach.presentation.base import LogNotifier, PlatformNotifier
from lgscoach.presentation.presenter import NotificationPresenter
from lgscoach.presentation.toast import ToastCenter
from lgscoach.utils.logging import bind_context, unbind_context
from lgscoach.worker.bridge import WorkerBridge

logger = logging.getLogger(__name__)


class CoachSession:
    """One coach's foreground notification session.

    Attributes:
        coach: The signed-in coach.
        selector: Foreground delivery state machine.
        visibility: Page visibility coordinator.
        presenter: Notification presenter.
    """

    def __init__(
        self,
        coach: CoachIdentity,
        repository: NotificationRepository,
        presenter: NotificationPresenter,
        realtime: RealtimeSource | None = None,
        bridge: WorkerBridge | None = None,
        credentials: tuple[str, str] | None = None,
        poll_interval: float = 10.0,
        safety_poll_interval: float | None = 30.0,
    ) -> None:
        """Initialize the session.

        Args:
            coach: The signed-in coach.
            repository: Notification table access.
            presenter: Notification presenter.
            realtime: Realtime source; None means polling only.
            bridge: Handle to the persistent worker, if one is running.
            credentials: (url, anon_key) handed to the worker on open.
            poll_interval: Fallback polling cadence.
            safety_poll_interval: Auxiliary poll cadence under realtime.
        """
        self.coach = coach
        self.presenter = presenter
        self._bridge = bridge
        self._credentials = credentials
        self.selector = DeliveryChannelSelector(
            coach_id=coach.id,
            repository=repository,
            presenter=presenter,
            realtime=realtime,
            poll_interval=poll_interval,
            safety_poll_interval=safety_poll_interval,
        )
        self.visibility = VisibilityCoordinator(self.selector, worker=bridge)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        coach: CoachIdentity,
        notifier: PlatformNotifier | None = None,
        bridge: WorkerBridge | None = None,
    ) -> "CoachSession":
        """Build a session against the configured backend."""
        presenter = NotificationPresenter(
            notifier=notifier or LogNotifier(),
            toasts=ToastCenter(duration=settings.delivery.toast_duration),
            worker=bridge,
            coach_route=settings.worker.coach_route,
        )
        return cls(
            coach=coach,
            repository=NotificationRepository(PostgrestClient.from_settings(settings)),
            presenter=presenter,
            realtime=RealtimeClient.from_settings(settings),
            bridge=bridge,
            credentials=(settings.supabase.url, settings.supabase.anon_key.get_secret_value()),
            poll_interval=settings.delivery.poll_interval,
            safety_poll_interval=settings.delivery.safety_poll_interval,
        )

    @property
    def notifications(self) -> list[NotificationRecord]:
        return self.selector.notifications

    @property
    def unread_count(self) -> int:
        return self.selector.unread_count

    async def open(self) -> None:
        """Hand identity and credentials to the worker, then start delivery."""
        bind_context(coach_id=self.coach.id)
        if self._bridge is not None:
            self._bridge.connect()
            await self._bridge.store_coach_data(self.coach)
            if self._credentials is not None:
                url, anon_key = self._credentials
                await self._bridge.store_credentials(url, anon_key)
        logger.info("Opening notification session for coach %s", self.coach.id)
        await self.selector.start()

    async def set_visible(self, is_visible: bool) -> None:
        await self.visibility.set_visible(is_visible)

    async def acknowledge(self, notification_id: str) -> bool:
        """Mark a notification as read."""
        return await self.selector.acknowledge(notification_id)

    async def close(self) -> None:
        """Stop foreground delivery. The worker keeps running."""
        await self.selector.stop()
        if self._bridge is not None:
            self._bridge.disconnect()
        self.presenter.toasts.dismiss()
        logger.info("Closed notification session for coach %s", self.coach.id)
        unbind_context("coach_id")

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Page-side handle to the persistent worker.

The bridge only exchanges JSON text with the worker: page messages go to
the worker's inbox, click events come back on the bridge's own queue.
"""

import asyncio
import logging

from lgscoach.models.coaching import CoachIdentity
from lgscoach.presentation.base import NotificationPermission
from lgscoach.worker.messages import (
    NotificationClicked,
    ShowNotification,
    StoreCoachData,
    StoreSupabaseCredentials,
    SupabaseCredentials,
    VisibilityChange,
    encode_message,
)
from lgscoach.worker.service import PersistentWorker

logger = logging.getLogger(__name__)


class WorkerBridge:
    """Connects one page to the persistent worker.

    Attributes:
        events: Click events from the worker, as JSON text.
    """

    def __init__(self, worker: PersistentWorker) -> None:
        self._worker = worker
        self.events: asyncio.Queue[str] = asyncio.Queue()

    @property
    def available(self) -> bool:
        """Whether the worker is active and allowed to show notifications.

        The worker shows notifications through its own notifier; a worker
        without granted permission would drop them, so it does not count
        as available.
        """
        return (
            self._worker.is_active
            and self._worker.notifier.permission == NotificationPermission.GRANTED
        )

    def connect(self) -> None:
        self._worker.register_client(self)

    def disconnect(self) -> None:
        self._worker.unregister_client(self)

    def _post(self, message) -> None:
        self._worker.post_message(encode_message(message))

    async def show_notification(self, title: str, body: str, tag: str | None = None) -> None:
        self._post(ShowNotification(title=title, body=body, tag=tag))

    async def store_coach_data(self, coach: CoachIdentity) -> None:
        self._post(StoreCoachData(coach=coach))

    async def store_credentials(self, url: str, anon_key: str) -> None:
        self._post(StoreSupabaseCredentials(credentials=SupabaseCredentials(url=url, anon_key=anon_key)))

    async def post_visibility(self, is_visible: bool) -> None:
        self._post(VisibilityChange(is_visible=is_visible))

    async def focus(self, event: NotificationClicked) -> None:
        """Called by the worker when a notification click targets this page."""
        logger.debug("Notification click routed to page: %s -> %s", event.action, event.url)
        self.events.put_nowait(encode_message(event))

    async def next_event(self) -> NotificationClicked:
        """Wait for the next click event."""
        raw = await self.events.get()
        return NotificationClicked.model_validate_json(raw)

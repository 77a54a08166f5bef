# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Presentation of one notification to the coach.

present() degrades step by step and never raises:

1. System notification, routed through the persistent worker when one
   is connected, else through the page's own platform notifier. Needs
   granted permission; permission is requested at most once per
   session and never after a denial.
2. In-page toast, always.
3. Audible/vibration cue where supported.
"""

import logging
from typing import Protocol

from lgscoach.core.exceptions import CueUnsupportedError, PermissionDeniedError
from lgscoach.models.notification import NotificationPayload
from lgscoach.presentation.base import (
    NotificationPermission,
    PlatformNotification,
    PlatformNotifier,
)
from lgscoach.presentation.cue import TerminalCue
from lgscoach.presentation.toast import ToastCenter

logger = logging.getLogger(__name__)


class WorkerChannel(Protocol):
    """Page-side handle to the persistent worker.

    available is True only when the worker can itself show notifications;
    otherwise the page notifier is used.
    """

    @property
    def available(self) -> bool: ...

    async def show_notification(self, title: str, body: str, tag: str | None = None) -> None: ...


class Cue(Protocol):
    def play(self) -> None: ...


class NotificationPresenter:
    """Renders notifications as system notification, toast and cue.

    Attributes:
        notifier: Platform notifier; also the source of permission.
        toasts: In-page toast center.
        cue: Audible/vibration cue; a TerminalCue unless given.
        worker: Persistent worker handle, or None.
    """

    def __init__(
        self,
        notifier: PlatformNotifier,
        toasts: ToastCenter,
        cue: Cue | None = None,
        worker: WorkerChannel | None = None,
        coach_route: str = "/coach",
    ) -> None:
        self.notifier = notifier
        self.toasts = toasts
        self.cue = cue if cue is not None else TerminalCue()
        self.worker = worker
        self.coach_route = coach_route
        self._permission_requested = False

    async def _permission(self) -> NotificationPermission:
        if self.notifier.permission != NotificationPermission.DEFAULT or self._permission_requested:
            return self.notifier.permission
        self._permission_requested = True
        try:
            return await self.notifier.request_permission()
        except Exception as e:
            logger.warning("Notification permission request failed: %s", e)
            return self.notifier.permission

    async def _show_system(
        self,
        title: str,
        body: str,
        tag: str | None,
        payload: NotificationPayload | None,
    ) -> bool:
        if await self._permission() != NotificationPermission.GRANTED:
            logger.debug("System notification skipped: permission %s", self.notifier.permission.value)
            return False

        try:
            if self.worker is not None and self.worker.available:
                await self.worker.show_notification(title, body, tag=tag)
            else:
                data = {"url": self.coach_route}
                if payload is not None:
                    data["payload"] = payload.model_dump(mode="json")
                await self.notifier.show(
                    PlatformNotification(title=title, body=body, tag=tag, data=data)
                )
        except PermissionDeniedError as e:
            logger.info("System notification skipped: %s", e)
            return False
        except Exception as e:
            logger.error("System notification failed: %s", e, exc_info=True)
            return False
        return True

    def _play_cue(self) -> None:
        try:
            self.cue.play()
        except CueUnsupportedError as e:
            logger.debug("Cue not played: %s", e)
        except Exception as e:
            logger.debug("Cue failed: %s", e)

    async def present(
        self,
        title: str,
        body: str,
        tag: str | None = None,
        payload: NotificationPayload | None = None,
    ) -> None:
        """Present a notification. Never raises.

        Args:
            title: Notification title.
            body: Notification body.
            tag: Replacement key for system notifications only.
            payload: Kind-specific data attached to the notification.
        """
        await self._show_system(title, body, tag, payload)

        try:
            self.toasts.show(title, body)
        except Exception as e:
            logger.error("Toast failed: %s", e, exc_info=True)

        self._play_cue()

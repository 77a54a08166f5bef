# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base classes for platform (system) notifications.

A PlatformNotifier shows OS-level notifications through one delivery
medium. Permission is tri-state and decided at most once: after a
request resolves to granted or denied it is never asked again. Tags
implement the platform's replacement policy: showing a notification
whose tag is already displayed replaces it instead of stacking.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from itertools import count
from typing import Any

from lgscoach.core.exceptions import PermissionDeniedError


class NotificationPermission(str, Enum):
    """Platform notification permission."""

    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


@dataclass
class NotificationAction:
    """An action button attached to a system notification."""

    action: str
    title: str
    icon: str | None = None


@dataclass
class PlatformNotification:
    """A system notification as handed to the platform.

    Attributes:
        title: Notification title.
        body: Notification body.
        tag: Replacement key; None never replaces.
        icon: Icon URL.
        require_interaction: Keep visible until the user acts.
        silent: Suppress the platform sound.
        actions: Action buttons.
        data: Data returned with click events.
    """

    title: str
    body: str
    tag: str | None = None
    icon: str = "/favicon.ico"
    require_interaction: bool = True
    silent: bool = True
    actions: list[NotificationAction] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class PlatformNotifier(ABC):
    """Abstract base class for system notification backends.

    Attributes:
        permission: Current permission state.
        displayed: Visible notifications keyed by tag.
    """

    def __init__(self, permission: NotificationPermission = NotificationPermission.DEFAULT) -> None:
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.permission = permission
        self.displayed: dict[str, PlatformNotification] = {}
        self._untagged = count(1)

    async def request_permission(self) -> NotificationPermission:
        """Ask for permission if it has not been decided yet.

        Returns:
            The resulting permission. A decided permission is returned
            without asking again.
        """
        if self.permission != NotificationPermission.DEFAULT:
            return self.permission
        self.permission = await self._request_permission()
        self.logger.info("Notification permission: %s", self.permission.value)
        return self.permission

    @abstractmethod
    async def _request_permission(self) -> NotificationPermission:
        """Backend-specific permission request."""
        ...

    @abstractmethod
    async def _deliver(self, notification: PlatformNotification) -> None:
        """Hand a notification to the platform."""
        ...

    async def show(self, notification: PlatformNotification) -> None:
        """Show a notification, replacing any displayed one with its tag.

        Raises:
            PermissionDeniedError: If permission is not granted.
        """
        if self.permission != NotificationPermission.GRANTED:
            raise PermissionDeniedError(
                "Notification permission not granted",
                details={"permission": self.permission.value},
            )
        await self._deliver(notification)
        key = notification.tag or f"untagged-{next(self._untagged)}"
        if key in self.displayed:
            self.logger.debug("Replacing notification with tag %s", key)
        self.displayed[key] = notification

    def close(self, tag: str) -> PlatformNotification | None:
        """Forget a displayed notification.

        Returns:
            The closed notification, if it was displayed.
        """
        return self.displayed.pop(tag, None)


class LogNotifier(PlatformNotifier):
    """Notifier that writes notifications to the log.

    Used where no push backend is configured, e.g. a worker run from a
    terminal. Permission is always granted.
    """

    def __init__(self) -> None:
        super().__init__(NotificationPermission.GRANTED)

    async def _request_permission(self) -> NotificationPermission:
        return NotificationPermission.GRANTED

    async def _deliver(self, notification: PlatformNotification) -> None:
        self.logger.info("[%s] %s: %s", notification.tag or "-", notification.title, notification.body)

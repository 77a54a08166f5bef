# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-page transient alerts.

At most one toast is visible: showing a new one clears the previous one
first. A toast disappears after a fixed duration or on explicit
dismissal. Listeners observe both events, which is how a page renders
them.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from itertools import count
from typing import Callable

from lgscoach.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class ToastEvent(str, Enum):
    SHOWN = "shown"
    DISMISSED = "dismissed"


@dataclass
class Toast:
    id: int
    title: str
    body: str
    shown_at: datetime = field(default_factory=utc_now)


ToastListener = Callable[[ToastEvent, Toast], None]


class ToastCenter:
    """Holds the single visible toast.

    Attributes:
        duration: Seconds before a toast is dismissed automatically.
        current: The visible toast, if any.
    """

    def __init__(self, duration: float = 10.0) -> None:
        self.duration = duration
        self.current: Toast | None = None
        self._ids = count(1)
        self._timer: asyncio.TimerHandle | None = None
        self._listeners: list[ToastListener] = []

    def add_listener(self, listener: ToastListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ToastListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: ToastEvent, toast: Toast) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, toast)
            except Exception as e:
                logger.error("Toast listener failed: %s", e, exc_info=True)

    def show(self, title: str, body: str) -> Toast:
        """Clear any visible toast and show a new one.

        Must be called from a running event loop; the auto-dismiss timer
        is scheduled on it.
        """
        if self.current is not None:
            self.dismiss()

        toast = Toast(id=next(self._ids), title=title, body=body)
        self.current = toast
        self._timer = asyncio.get_running_loop().call_later(
            self.duration, self._expire, toast.id
        )
        self._emit(ToastEvent.SHOWN, toast)
        return toast

    def _expire(self, toast_id: int) -> None:
        if self.current is not None and self.current.id == toast_id:
            self.dismiss()

    def dismiss(self) -> Toast | None:
        """Remove the visible toast.

        Returns:
            The dismissed toast, or None if nothing was visible.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        toast, self.current = self.current, None
        if toast is not None:
            self._emit(ToastEvent.DISMISSED, toast)
        return toast

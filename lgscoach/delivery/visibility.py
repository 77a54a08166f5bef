# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Page visibility tracking."""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Resyncable(Protocol):
    async def sync(self) -> int: ...


class VisibilitySink(Protocol):
    async def post_visibility(self, is_visible: bool) -> None: ...


class VisibilityCoordinator:
    """Reacts to the page moving between foreground and background.

    Each hidden->visible transition triggers exactly one re-sync of the
    delivery selector. Every transition is forwarded to the persistent
    worker as an informational message. Repeated reports of the current
    state are ignored.

    Attributes:
        is_visible: Last reported visibility.
    """

    def __init__(
        self,
        selector: Resyncable,
        worker: VisibilitySink | None = None,
        is_visible: bool = True,
    ) -> None:
        self.is_visible = is_visible
        self._selector = selector
        self._worker = worker

    async def set_visible(self, is_visible: bool) -> None:
        """Report the current page visibility."""
        if is_visible == self.is_visible:
            return
        self.is_visible = is_visible
        logger.debug("Page is now %s", "visible" if is_visible else "hidden")

        if self._worker is not None:
            try:
                await self._worker.post_visibility(is_visible)
            except Exception as e:
                logger.warning("Could not forward visibility to worker: %s", e)

        if is_visible:
            delivered = await self._selector.sync()
            if delivered:
                logger.info("Visibility re-sync delivered %d notifications", delivered)

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Persistent background worker for coach notifications.

The worker outlives any page. It owns an inbox of JSON messages from
pages, a repeating check timer and durable storage. A check reads the
coach's unread notifications with the cached credentials, keeps those
created after the stored last-check timestamp, shows them as system
notifications and advances the timestamp to the newest one shown.

Lifecycle:
    IDLE ──activate()──> ACTIVATING ──grace delay──> RUNNING
    ACTIVATING/RUNNING ──deactivate()──> STOPPED ──activate()──> ...

Missing coach identity or credentials is the normal state before a page
has sent them; checks are no-ops until both are cached.
"""

import asyncio
import json
import logging
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol

from pydantic import BaseModel, ValidationError

from lgscoach.core.exceptions import WorkerNotReadyError
from lgscoach.infrastructure.supabase.rest import PostgrestClient
from lgscoach.models.coaching import CoachIdentity
from lgscoach.models.notification import NotificationRecord
from lgscoach.notifications.repository import NotificationRepository
from lgscoach.presentation.base import (
    NotificationAction,
    PlatformNotification,
    PlatformNotifier,
)
from lgscoach.worker.messages import (
    NotificationClicked,
    ShowNotification,
    StoreCoachData,
    StoreSupabaseCredentials,
    SupabaseCredentials,
    VisibilityChange,
    WorkerMessage,
    encode_message,
    parse_message,
)
from lgscoach.worker.storage import WorkerStorage

if TYPE_CHECKING:
    from lgscoach.core.config.settings import Settings

logger = logging.getLogger(__name__)

OPEN_ACTION = "open"
CLOSE_ACTION = "close"


class WorkerState(str, Enum):
    IDLE = "idle"
    ACTIVATING = "activating"
    RUNNING = "running"
    STOPPED = "stopped"


class WorkerClient(Protocol):
    """A connected page that can be focused."""

    async def focus(self, event: NotificationClicked) -> None: ...


WindowOpener = Callable[[str], Awaitable[None]]
RepositoryFactory = Callable[[SupabaseCredentials], NotificationRepository]


def build_repository(
    credentials: SupabaseCredentials,
    schema: str = "public",
    timeout: float = 15.0,
) -> NotificationRepository:
    """Build a notification repository from cached credentials."""
    return NotificationRepository(
        PostgrestClient(
            rest_url=f"{credentials.url.rstrip('/')}/rest/v1",
            api_key=credentials.anon_key,
            schema=schema,
            timeout=timeout,
        )
    )


class PersistentWorker:
    """Background notification worker.

    Attributes:
        inbox: Queue of JSON messages from pages.
        storage: Durable cache of identity, credentials and last check.
        notifier: Platform notifier used for every notification.
        page_visible: Last visibility reported by a page.
    """

    def __init__(
        self,
        storage: WorkerStorage,
        notifier: PlatformNotifier,
        check_interval: float = 10.0,
        activation_grace: float = 2.0,
        coach_route: str = "/coach",
        icon: str = "/favicon.ico",
        repository_factory: RepositoryFactory | None = None,
        window_opener: WindowOpener | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            storage: Durable worker storage.
            notifier: Platform notifier.
            check_interval: Seconds between background checks.
            activation_grace: Seconds between activation and the first
                check, giving pages time to send identity and credentials.
            coach_route: Route opened or focused on click.
            icon: Notification icon.
            repository_factory: Builds a repository from cached
                credentials; defaults to a PostgREST-backed one.
            window_opener: Opens a new window at a route when no page is
                connected.
        """
        self.storage = storage
        self.notifier = notifier
        self.check_interval = check_interval
        self.activation_grace = activation_grace
        self.coach_route = coach_route
        self.icon = icon
        self.page_visible = True
        self.inbox: asyncio.Queue[str] = asyncio.Queue()

        self._repository_factory = repository_factory or build_repository
        self._window_opener = window_opener
        self._clients: list[WorkerClient] = []
        self._state = WorkerState.IDLE
        self._consumer: asyncio.Task | None = None
        self._timer: asyncio.Task | None = None
        self._check_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        storage: WorkerStorage,
        notifier: PlatformNotifier,
        window_opener: WindowOpener | None = None,
    ) -> "PersistentWorker":
        """Create a worker from application settings."""
        return cls(
            storage=storage,
            notifier=notifier,
            check_interval=settings.worker.check_interval,
            activation_grace=settings.worker.activation_grace,
            coach_route=settings.worker.coach_route,
            icon=settings.push.icon,
            repository_factory=partial(
                build_repository,
                schema=settings.supabase.schema_name,
                timeout=settings.supabase.timeout,
            ),
            window_opener=window_opener,
        )

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state in (WorkerState.ACTIVATING, WorkerState.RUNNING)

    # Lifecycle

    async def activate(self) -> None:
        """Start the inbox consumer and, after the grace delay, the timer."""
        if self.is_active:
            return
        self._state = WorkerState.ACTIVATING
        self._consumer = asyncio.create_task(self._consume(), name="worker-inbox")
        self._timer = asyncio.create_task(self._run_timer(), name="worker-timer")
        logger.info(
            "Worker activated; first check in %.1fs, then every %.1fs",
            self.activation_grace,
            self.check_interval,
        )

    async def deactivate(self) -> None:
        """Stop the timer and the inbox consumer. Durable state is kept."""
        if not self.is_active:
            return
        self._state = WorkerState.STOPPED
        for task in (self._timer, self._consumer):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._timer = None
        self._consumer = None
        self._clients.clear()
        logger.info("Worker deactivated")

    async def _run_timer(self) -> None:
        await asyncio.sleep(self.activation_grace)
        self._state = WorkerState.RUNNING
        while True:
            try:
                await self.check_for_new_notifications()
            except Exception as e:
                logger.error("Background notification check failed: %s", e, exc_info=True)
            await asyncio.sleep(self.check_interval)

    # Messaging

    def post_message(self, message: str | dict[str, Any] | BaseModel) -> None:
        """Deliver a message to the worker's inbox."""
        if isinstance(message, BaseModel):
            raw = encode_message(message)
        elif isinstance(message, dict):
            raw = json.dumps(message, ensure_ascii=False)
        else:
            raw = message
        self.inbox.put_nowait(raw)

    async def _consume(self) -> None:
        while True:
            raw = await self.inbox.get()
            try:
                await self.handle_message(raw)
            except Exception as e:
                logger.error("Worker message handling failed: %s", e, exc_info=True)
            finally:
                self.inbox.task_done()

    async def handle_message(self, raw: str | bytes | dict[str, Any]) -> None:
        """Decode and act on one page message. Unknown messages are logged."""
        try:
            message: WorkerMessage = parse_message(raw)
        except ValidationError as e:
            logger.warning("Ignoring malformed worker message: %s", e)
            return

        if isinstance(message, ShowNotification):
            await self._show(
                PlatformNotification(
                    title=message.title,
                    body=message.body,
                    tag=message.tag or "coach-notification",
                    icon=message.icon or self.icon,
                    actions=self._actions(),
                    data={"url": self.coach_route},
                )
            )
        elif isinstance(message, StoreCoachData):
            await self.storage.set_coach(message.coach)
        elif isinstance(message, StoreSupabaseCredentials):
            await self.storage.set_credentials(message.credentials)
            if self.is_active:
                await self.check_for_new_notifications()
        elif isinstance(message, VisibilityChange):
            self.page_visible = message.is_visible
            logger.info("Page visibility changed: %s", "visible" if message.is_visible else "hidden")

    # Background check

    async def _load_context(self) -> tuple[CoachIdentity, SupabaseCredentials]:
        coach = await self.storage.get_coach()
        if coach is None:
            raise WorkerNotReadyError("No cached coach identity")
        credentials = await self.storage.get_credentials()
        if credentials is None or not credentials.url or not credentials.anon_key:
            raise WorkerNotReadyError("No cached backend credentials")
        return coach, credentials

    async def check_for_new_notifications(self) -> int:
        """Show unread notifications created since the last check.

        Returns:
            Number of notifications shown.
        """
        async with self._check_lock:
            try:
                coach, credentials = await self._load_context()
            except WorkerNotReadyError as e:
                logger.debug("Background check skipped: %s", e)
                return 0

            repository = self._repository_factory(credentials)
            records = await repository.get_unread_notifications(coach.id)
            last_check = await self.storage.get_last_check()
            shown_at_last_check = await self.storage.get_last_check_ids()
            new = sorted(
                (
                    r
                    for r in records
                    if r.created_at > last_check
                    or (r.created_at == last_check and r.id not in shown_at_last_check)
                ),
                key=lambda r: r.created_at,
            )
            if not new:
                return 0

            logger.info("%d new notifications for coach %s", len(new), coach.id)
            for record in new:
                await self._show(self._to_platform(record))

            newest = new[-1].created_at
            boundary_ids = {r.id for r in new if r.created_at == newest}
            if newest == last_check:
                boundary_ids |= shown_at_last_check
            await self.storage.set_last_check(newest, boundary_ids)
            return len(new)

    def _actions(self) -> list[NotificationAction]:
        return [
            NotificationAction(action=OPEN_ACTION, title="📱 Koç Panelini Aç", icon=self.icon),
            NotificationAction(action=CLOSE_ACTION, title="✕ Kapat"),
        ]

    def _to_platform(self, record: NotificationRecord) -> PlatformNotification:
        return PlatformNotification(
            title=record.title,
            body=record.message,
            tag=record.tag,
            icon=self.icon,
            actions=self._actions(),
            data={
                "url": self.coach_route,
                "notificationId": record.id,
                "timestamp": record.created_at.isoformat(),
            },
        )

    async def _show(self, notification: PlatformNotification) -> None:
        try:
            await self.notifier.show(notification)
        except Exception as e:
            logger.error("Worker could not show %r: %s", notification.title, e)

    # Clicks and clients

    def register_client(self, client: WorkerClient) -> None:
        if client not in self._clients:
            self._clients.append(client)

    def unregister_client(self, client: WorkerClient) -> None:
        if client in self._clients:
            self._clients.remove(client)

    async def handle_notification_click(
        self,
        action: str | None,
        tag: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Route a click on a shown notification.

        The notification is closed in every case. ``close`` does nothing
        more; any other action focuses the first connected page, or opens
        a new window at the coach route when none is connected.
        """
        if tag:
            self.notifier.close(tag)
        if action == CLOSE_ACTION:
            return

        data = data or {}
        url = data.get("url") or self.coach_route
        event = NotificationClicked(
            action=action or OPEN_ACTION,
            url=url,
            notification_id=data.get("notificationId"),
        )

        if self._clients:
            await self._clients[0].focus(event)
            return
        if self._window_opener is not None:
            await self._window_opener(url)
        else:
            logger.warning("No page connected and no window opener for %s", url)

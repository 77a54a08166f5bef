# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""System notifications delivered as web push via Firebase Cloud Messaging.

Each notification is sent to every registered browser token of the coach
through the FCM HTTP v1 API as a ``webpush`` message; the browser's
service worker shows it with the given tag, actions and click link.

Configuration (via environment variables):
- PUSH_CREDENTIALS_PATH: Path to service account JSON file
- PUSH_PROJECT_ID: Firebase project ID
- PUSH_DEVICE_TOKENS: Comma-separated browser push tokens
"""

import asyncio
import os
from typing import Any

import httpx
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from lgscoach.core.config.settings import PushSettings
from lgscoach.core.exceptions import CoachNotifyError
from lgscoach.presentation.base import (
    NotificationPermission,
    PlatformNotification,
    PlatformNotifier,
)

# FCM HTTP v1 API endpoint template
FCM_API_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"


class WebPushNotifier(PlatformNotifier):
    """Platform notifier backed by FCM web push.

    Permission is granted when service account credentials load and at
    least one device token is registered, and denied otherwise.
    """

    def __init__(
        self,
        settings: PushSettings,
        transport: httpx.AsyncBaseTransport | None = None,
        credentials: Any = None,
    ) -> None:
        """Initialize the notifier.

        Args:
            settings: Push settings.
            transport: Optional httpx transport (used by tests).
            credentials: Preloaded google-auth credentials.
        """
        super().__init__()
        self._settings = settings
        self._transport = transport
        self._credentials = credentials
        self._init_error: str | None = None

    @property
    def device_tokens(self) -> list[str]:
        return self._settings.device_tokens_list

    def _ensure_initialized(self) -> bool:
        if self._credentials is not None:
            return True
        if self._init_error:
            return False

        credentials_path = self._settings.credentials_path
        if not credentials_path or not self._settings.project_id:
            self._init_error = "Web push not configured"
            self.logger.warning(
                "Web push disabled: PUSH_CREDENTIALS_PATH or PUSH_PROJECT_ID not set"
            )
            return False

        if not os.path.exists(credentials_path):
            self._init_error = f"Credentials file not found: {credentials_path}"
            self.logger.error(self._init_error)
            return False

        try:
            self._credentials = service_account.Credentials.from_service_account_file(
                credentials_path,
                scopes=[FCM_SCOPE],
            )
        except (ValueError, OSError) as e:
            self._init_error = f"Failed to load credentials: {e}"
            self.logger.error(self._init_error)
            return False

        self.logger.info("Web push initialized for project %s", self._settings.project_id)
        return True

    async def _request_permission(self) -> NotificationPermission:
        if not self._ensure_initialized():
            return NotificationPermission.DENIED
        if not self.device_tokens:
            self.logger.info("No web push device tokens registered")
            return NotificationPermission.DENIED
        return NotificationPermission.GRANTED

    async def _get_access_token(self) -> str:
        """Refresh and return the OAuth2 access token.

        Raises:
            CoachNotifyError: If the token cannot be obtained.
        """
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._credentials.refresh, Request())
        except Exception as e:
            raise CoachNotifyError(f"Failed to get FCM access token: {e}") from e
        return self._credentials.token

    def _build_message(self, token: str, notification: PlatformNotification) -> dict[str, Any]:
        webpush_notification: dict[str, Any] = {
            "title": notification.title,
            "body": notification.body,
            "icon": notification.icon,
            "badge": notification.icon,
            "requireInteraction": notification.require_interaction,
            "silent": notification.silent,
            "actions": [
                {k: v for k, v in (("action", a.action), ("title", a.title), ("icon", a.icon)) if v}
                for a in notification.actions
            ],
            "data": notification.data,
        }
        if notification.tag:
            webpush_notification["tag"] = notification.tag

        return {
            "token": token,
            "data": {k: str(v) for k, v in notification.data.items()},
            "webpush": {
                "headers": {"Urgency": "high"},
                "notification": webpush_notification,
                "fcm_options": {"link": str(notification.data.get("url", "/"))},
            },
        }

    async def _deliver(self, notification: PlatformNotification) -> None:
        """Send to every device token.

        Raises:
            CoachNotifyError: If no token accepted the message.
        """
        access_token = await self._get_access_token()
        url = FCM_API_URL.format(project_id=self._settings.project_id)
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        sent = 0
        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            for token in self.device_tokens:
                try:
                    response = await client.post(
                        url,
                        headers=headers,
                        json={"message": self._build_message(token, notification)},
                    )
                except httpx.HTTPError as e:
                    self.logger.error("Failed to send push to %s...: %s", token[:20], e)
                    continue

                if response.status_code == 200:
                    sent += 1
                    self.logger.debug(
                        "Push sent to %s...: %s",
                        token[:20],
                        response.json().get("name", "").split("/")[-1],
                    )
                else:
                    self.logger.warning(
                        "FCM request failed (%d): %s",
                        response.status_code,
                        response.text,
                    )

        if sent == 0:
            raise CoachNotifyError(
                "Web push failed for all device tokens",
                details={"tokens": len(self.device_tokens)},
            )

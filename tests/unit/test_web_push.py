# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for WebPushNotifier."""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from lgscoach.core.config.settings import PushSettings
from lgscoach.core.exceptions import CoachNotifyError
from lgscoach.presentation import (
    NotificationAction,
    NotificationPermission,
    PlatformNotification,
    WebPushNotifier,
)


@pytest.fixture
def credentials():
    """Create mock google-auth credentials."""
    credentials = MagicMock()
    credentials.token = "access-token"
    return credentials


@pytest.fixture
def push_settings() -> PushSettings:
    return PushSettings(
        project_id="lgs-coach",
        credentials_path="/secrets/sa.json",
        device_tokens="token-a, token-b",
    )


@pytest.fixture
def notification() -> PlatformNotification:
    return PlatformNotification(
        title="📚 Ayşe - Günlük Soru Girişi",
        body="Matematik dersinden 25 soru çözdü",
        tag="coach-notification-1",
        actions=[NotificationAction(action="open", title="📱 Koç Panelini Aç", icon="/favicon.ico")],
        data={"url": "/coach", "notificationId": "1"},
    )


def make_notifier(push_settings, credentials, handler) -> WebPushNotifier:
    return WebPushNotifier(
        push_settings,
        transport=httpx.MockTransport(handler),
        credentials=credentials,
    )


class TestPermission:
    """Tests for permission resolution."""

    @pytest.mark.asyncio
    async def test_granted_with_credentials_and_tokens(self, push_settings, credentials) -> None:
        notifier = WebPushNotifier(push_settings, credentials=credentials)

        assert await notifier.request_permission() == NotificationPermission.GRANTED

    @pytest.mark.asyncio
    async def test_denied_without_tokens(self, credentials) -> None:
        notifier = WebPushNotifier(PushSettings(project_id="p"), credentials=credentials)

        assert await notifier.request_permission() == NotificationPermission.DENIED

    @pytest.mark.asyncio
    async def test_denied_when_not_configured(self) -> None:
        notifier = WebPushNotifier(PushSettings(device_tokens="token-a"))

        assert await notifier.request_permission() == NotificationPermission.DENIED

    @pytest.mark.asyncio
    async def test_denied_when_credentials_file_missing(self, tmp_path) -> None:
        settings = PushSettings(
            project_id="p",
            credentials_path=str(tmp_path / "missing.json"),
            device_tokens="token-a",
        )

        assert await WebPushNotifier(settings).request_permission() == NotificationPermission.DENIED


class TestDelivery:
    """Tests for FCM message delivery."""

    @pytest.mark.asyncio
    async def test_sends_webpush_message_per_token(
        self, push_settings, credentials, notification
    ) -> None:
        """Test each token receives a webpush message with tag and actions."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"name": "projects/lgs-coach/messages/42"})

        notifier = make_notifier(push_settings, credentials, handler)
        await notifier.request_permission()

        await notifier.show(notification)

        assert len(requests) == 2
        assert str(requests[0].url) == "https://fcm.googleapis.com/v1/projects/lgs-coach/messages:send"
        assert requests[0].headers["Authorization"] == "Bearer access-token"
        message = json.loads(requests[0].content)["message"]
        assert message["token"] == "token-a"
        webpush = message["webpush"]
        assert webpush["notification"]["tag"] == "coach-notification-1"
        assert webpush["notification"]["requireInteraction"] is True
        assert webpush["notification"]["actions"][0]["action"] == "open"
        assert webpush["fcm_options"]["link"] == "/coach"
        assert message["data"] == {"url": "/coach", "notificationId": "1"}
        credentials.refresh.assert_called_once()

    @pytest.mark.asyncio
    async def test_partial_failure_is_success(self, push_settings, credentials, notification) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            token = json.loads(request.content)["message"]["token"]
            if token == "token-a":
                return httpx.Response(404, json={"error": {"status": "NOT_FOUND"}})
            return httpx.Response(200, json={"name": "projects/lgs-coach/messages/1"})

        notifier = make_notifier(push_settings, credentials, handler)
        await notifier.request_permission()

        await notifier.show(notification)

        assert "coach-notification-1" in notifier.displayed

    @pytest.mark.asyncio
    async def test_all_tokens_failing_raises(self, push_settings, credentials, notification) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="unavailable")

        notifier = make_notifier(push_settings, credentials, handler)
        await notifier.request_permission()

        with pytest.raises(CoachNotifyError):
            await notifier.show(notification)
        assert notifier.displayed == {}

    @pytest.mark.asyncio
    async def test_token_refresh_failure_raises(self, push_settings, credentials, notification) -> None:
        credentials.refresh.side_effect = RuntimeError("invalid_grant")
        notifier = make_notifier(push_settings, credentials, lambda r: httpx.Response(200, json={}))
        await notifier.request_permission()

        with pytest.raises(CoachNotifyError, match="access token"):
            await notifier.show(notification)

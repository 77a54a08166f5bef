# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for page<->worker messages and worker storage."""

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from lgscoach.models.coaching import CoachIdentity
from lgscoach.utils.datetime import EPOCH
from lgscoach.worker.messages import (
    NotificationClicked,
    ShowNotification,
    StoreCoachData,
    StoreSupabaseCredentials,
    SupabaseCredentials,
    VisibilityChange,
    encode_message,
    parse_message,
)
from lgscoach.worker.storage import WorkerStorage


class TestParseMessage:
    """Tests for decoding page messages."""

    def test_store_coach_data(self) -> None:
        message = parse_message(
            '{"type": "STORE_COACH_DATA", "coach": {"id": "c1", "fullName": "Koç Mehmet"}}'
        )

        assert isinstance(message, StoreCoachData)
        assert message.coach.full_name == "Koç Mehmet"

    def test_credentials_use_wire_names(self) -> None:
        message = parse_message(
            {
                "type": "STORE_SUPABASE_CREDENTIALS",
                "credentials": {"url": "https://x.supabase.co", "anonKey": "anon"},
            }
        )

        assert isinstance(message, StoreSupabaseCredentials)
        assert message.credentials.anon_key == "anon"

    def test_visibility_change(self) -> None:
        message = parse_message(b'{"type": "VISIBILITY_CHANGE", "isVisible": false}')

        assert isinstance(message, VisibilityChange)
        assert message.is_visible is False

    def test_show_notification_defaults(self) -> None:
        message = parse_message({"type": "SHOW_NOTIFICATION", "title": "Merhaba"})

        assert isinstance(message, ShowNotification)
        assert message.body == ""
        assert message.tag is None

    @pytest.mark.parametrize(
        "raw",
        [
            '{"type": "UNKNOWN"}',
            '{"title": "no type"}',
            '{"type": "VISIBILITY_CHANGE"}',
            "not json",
        ],
    )
    def test_malformed_rejected(self, raw: str) -> None:
        with pytest.raises(ValidationError):
            parse_message(raw)


class TestEncodeMessage:
    """Tests for encoding with wire names."""

    def test_camel_case_fields(self) -> None:
        raw = encode_message(
            StoreSupabaseCredentials(credentials=SupabaseCredentials(url="u", anon_key="k"))
        )

        assert json.loads(raw) == {
            "type": "STORE_SUPABASE_CREDENTIALS",
            "credentials": {"url": "u", "anonKey": "k"},
        }

    def test_click_event(self) -> None:
        raw = encode_message(NotificationClicked(action="open", url="/coach", notification_id="7"))

        assert json.loads(raw)["notificationId"] == "7"
        assert NotificationClicked.model_validate_json(raw).notification_id == "7"


class TestWorkerStorage:
    """Tests for WorkerStorage over Redis."""

    @pytest.fixture
    def storage(self, redis_client) -> WorkerStorage:
        return WorkerStorage(redis_client)

    @pytest.mark.asyncio
    async def test_empty_storage(self, storage) -> None:
        assert await storage.get_coach() is None
        assert await storage.get_credentials() is None
        assert await storage.get_last_check() == EPOCH

    @pytest.mark.asyncio
    async def test_coach_round_trip(self, storage, fake_redis) -> None:
        await storage.set_coach(CoachIdentity(id="c1", full_name="Koç Mehmet"))

        assert (await storage.get_coach()).full_name == "Koç Mehmet"
        assert json.loads(fake_redis.data["coach-cache:coach-data"])["fullName"] == "Koç Mehmet"

    @pytest.mark.asyncio
    async def test_credentials_round_trip(self, storage) -> None:
        await storage.set_credentials(SupabaseCredentials(url="https://x.supabase.co", anon_key="anon"))

        credentials = await storage.get_credentials()
        assert credentials.url == "https://x.supabase.co"
        assert credentials.anon_key == "anon"

    @pytest.mark.asyncio
    async def test_anon_key_not_logged(self, storage, caplog) -> None:
        caplog.set_level("DEBUG")

        await storage.set_credentials(SupabaseCredentials(url="u", anon_key="super-secret-key"))

        assert "super-secret-key" not in caplog.text

    @pytest.mark.asyncio
    async def test_last_check_round_trip(self, storage) -> None:
        value = datetime(2024, 7, 25, 10, 0, 5, tzinfo=timezone.utc)

        await storage.set_last_check(value)

        assert await storage.get_last_check() == value
        assert await storage.get_last_check_ids() == set()

    @pytest.mark.asyncio
    async def test_last_check_ids_round_trip(self, storage, fake_redis) -> None:
        await storage.set_last_check(datetime(2024, 7, 25, tzinfo=timezone.utc), {"7", "3"})

        assert await storage.get_last_check_ids() == {"3", "7"}
        assert json.loads(fake_redis.data["coach-cache:last-notification-ids"]) == ["3", "7"]

    @pytest.mark.asyncio
    async def test_invalid_cached_coach_ignored(self, storage, fake_redis) -> None:
        fake_redis.data["coach-cache:coach-data"] = '{"id": "c1"}'

        assert await storage.get_coach() is None

    @pytest.mark.asyncio
    async def test_clear(self, storage, fake_redis) -> None:
        await storage.set_coach(CoachIdentity(id="c1", full_name="K"))
        await storage.set_last_check(datetime(2024, 7, 25, tzinfo=timezone.utc), {"1"})

        await storage.clear()

        assert fake_redis.data == {}

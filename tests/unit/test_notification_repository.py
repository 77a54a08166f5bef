# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for NotificationRepository."""

from datetime import date

import pytest

from lgscoach.core.exceptions import StoreError
from lgscoach.models.notification import (
    DailyLogAddedPayload,
    DiagnosticPayload,
    NotificationKind,
)


class TestCreateNotification:
    """Tests for notification creation."""

    @pytest.mark.asyncio
    async def test_create_returns_stored_record(self, repository, fake_store) -> None:
        """Test the created record is unread and has an id and timestamp."""
        record = await repository.create_notification(
            recipient_id="coach-1",
            kind=NotificationKind.TEST,
            title="🔔 Test Bildirimi",
            message="Merhaba",
            payload=DiagnosticPayload(note="Merhaba"),
        )

        assert record.id
        assert record.is_read is False
        assert record.recipient_id == "coach-1"
        assert fake_store.tables["notifications"][0]["type"] == "test"

    @pytest.mark.asyncio
    async def test_payload_round_trips_unmodified(self, repository) -> None:
        """Test payloads come back from reads exactly as written."""
        payload = DailyLogAddedPayload(
            student_id="student-1",
            student_name="Ayşe",
            subject="Matematik",
            question_count=25,
            added_count=15,
            date=date(2024, 7, 25),
        )
        await repository.create_notification(
            "coach-1", NotificationKind.DAILY_LOG_ADDED, "t", "m", payload
        )

        [record] = await repository.get_unread_notifications("coach-1")

        assert record.payload == payload

    @pytest.mark.asyncio
    async def test_rejected_insert_raises(self, repository, fake_store) -> None:
        fake_store.failing.add("notifications")

        with pytest.raises(StoreError):
            await repository.create_notification(
                "coach-1", NotificationKind.TEST, "t", "m", DiagnosticPayload()
            )


class TestGetUnreadNotifications:
    """Tests for unread queries."""

    @pytest.mark.asyncio
    async def test_only_unread_for_recipient_newest_first(self, repository, add_notification) -> None:
        first = add_notification(title="first")
        add_notification(title="read", is_read=True)
        add_notification(title="other coach", coach_id="coach-2")
        third = add_notification(title="third")

        records = await repository.get_unread_notifications("coach-1")

        assert [r.id for r in records] == [third["id"], first["id"]]

    @pytest.mark.asyncio
    async def test_empty(self, repository) -> None:
        assert await repository.get_unread_notifications("coach-1") == []

    @pytest.mark.asyncio
    async def test_store_failure_returns_empty(self, repository, fake_store, add_notification) -> None:
        """Test a failed read degrades to an empty list."""
        add_notification()
        fake_store.failing.add("notifications")

        assert await repository.get_unread_notifications("coach-1") == []

    @pytest.mark.asyncio
    async def test_malformed_rows_skipped(self, repository, fake_store, add_notification) -> None:
        good = add_notification()
        fake_store.add("notifications", coach_id="coach-1", type="bogus", title="x",
                       message="y", data={}, is_read=False)

        records = await repository.get_unread_notifications("coach-1")

        assert [r.id for r in records] == [good["id"]]


class TestMarkNotificationAsRead:
    """Tests for acknowledgment."""

    @pytest.mark.asyncio
    async def test_mark_read_is_idempotent(self, repository, fake_store, add_notification) -> None:
        row = add_notification()

        assert await repository.mark_notification_as_read(row["id"]) is True
        assert await repository.mark_notification_as_read(row["id"]) is True
        assert fake_store.tables["notifications"][0]["is_read"] is True
        assert await repository.get_unread_notifications("coach-1") == []

    @pytest.mark.asyncio
    async def test_missing_record_is_not_an_error(self, repository) -> None:
        assert await repository.mark_notification_as_read("missing") is False

    @pytest.mark.asyncio
    async def test_store_failure_returns_false(self, repository, fake_store, add_notification) -> None:
        row = add_notification()
        fake_store.failing.add("notifications")

        assert await repository.mark_notification_as_read(row["id"]) is False


class TestResolveRecipient:
    """Tests for coach resolution."""

    @pytest.mark.asyncio
    async def test_resolves_coach(self, repository, seeded_store) -> None:
        assert await repository.resolve_recipient_for_student("student-1") == "coach-1"

    @pytest.mark.asyncio
    async def test_student_without_coach(self, repository, seeded_store) -> None:
        assert await repository.resolve_recipient_for_student("student-2") is None

    @pytest.mark.asyncio
    async def test_unknown_student(self, repository, seeded_store) -> None:
        assert await repository.resolve_recipient_for_student("nobody") is None

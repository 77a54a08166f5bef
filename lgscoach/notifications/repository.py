# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification table access.

NotificationRepository is the only component that reads or writes the
``notifications`` table. Reads and acknowledgments never raise: a failed
request is logged and reported as an empty list or False, so a failed
poll simply retries on the next cycle. Creation raises StoreError and
leaves the decision to the caller.
"""

import logging
from typing import Any

from pydantic import ValidationError

from lgscoach.core.exceptions import StoreError
from lgscoach.infrastructure.supabase.rest import PostgrestClient
from lgscoach.models.coaching import StudentRef
from lgscoach.models.notification import (
    NewNotification,
    NotificationKind,
    NotificationPayload,
    NotificationRecord,
)

logger = logging.getLogger(__name__)

NOTIFICATIONS_TABLE = "notifications"
USERS_TABLE = "users"


def parse_records(rows: list[dict[str, Any]]) -> list[NotificationRecord]:
    """Validate store rows, skipping (and logging) malformed ones.

    Args:
        rows: Row dictionaries.

    Returns:
        Records in input order.
    """
    records: list[NotificationRecord] = []
    for row in rows:
        try:
            records.append(NotificationRecord.from_row(row))
        except ValidationError as e:
            logger.warning("Skipping malformed notification row %s: %s", row.get("id"), e)
    return records


class NotificationRepository:
    """Reads and writes notification rows over the REST API.

    Attributes:
        client: PostgREST client for the hosted store.
    """

    def __init__(self, client: PostgrestClient) -> None:
        self.client = client

    async def create_notification(
        self,
        recipient_id: str,
        kind: NotificationKind,
        title: str,
        message: str,
        payload: NotificationPayload,
    ) -> NotificationRecord:
        """Insert a new unread notification.

        Args:
            recipient_id: Coach who should see the notification.
            kind: Notification kind.
            title: Rendered title.
            message: Rendered body.
            payload: Kind-specific payload, stored as given.

        Returns:
            The record as stored, with id and created_at assigned.

        Raises:
            StoreError: If the insert is rejected or returns no row.
        """
        new = NewNotification(
            recipient_id=recipient_id,
            kind=kind,
            title=title,
            message=message,
            payload=payload,
        )
        rows = await self.client.insert(NOTIFICATIONS_TABLE, new.to_row())
        if not rows:
            raise StoreError(
                "Notification insert returned no row",
                details={"recipient_id": recipient_id, "kind": kind.value},
            )

        record = NotificationRecord.from_row(rows[0])
        logger.info(
            "Created %s notification %s for coach %s",
            record.kind.value,
            record.id,
            record.recipient_id,
        )
        return record

    async def get_unread_notifications(self, recipient_id: str) -> list[NotificationRecord]:
        """Fetch unread notifications for a coach, newest first.

        Args:
            recipient_id: Coach identifier.

        Returns:
            Unread records ordered by created_at descending. Empty when
            there are none or the request failed.
        """
        try:
            rows = await self.client.select(
                NOTIFICATIONS_TABLE,
                filters={"coach_id": recipient_id, "is_read": False},
                order="created_at",
                descending=True,
            )
        except StoreError as e:
            logger.error("Failed to fetch unread notifications for %s: %s", recipient_id, e)
            return []

        records = [r for r in parse_records(rows) if not r.is_read]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    async def mark_notification_as_read(self, notification_id: str) -> bool:
        """Acknowledge a notification. Idempotent.

        Args:
            notification_id: Notification identifier.

        Returns:
            True if the row exists and is now read, False if it was not
            found or the request failed.
        """
        try:
            rows = await self.client.update(
                NOTIFICATIONS_TABLE,
                values={"is_read": True},
                filters={"id": notification_id},
            )
        except StoreError as e:
            logger.error("Failed to mark notification %s as read: %s", notification_id, e)
            return False

        if not rows:
            logger.warning("Notification %s not found, nothing marked as read", notification_id)
            return False
        return True

    async def get_student(self, student_id: str) -> StudentRef | None:
        """Fetch a student row.

        Returns:
            The student, or None if missing or the request failed.
        """
        try:
            row = await self.client.select_one(
                USERS_TABLE,
                filters={"id": student_id},
            )
        except StoreError as e:
            logger.error("Failed to fetch student %s: %s", student_id, e)
            return None

        if row is None:
            return None
        try:
            return StudentRef.model_validate(row)
        except ValidationError as e:
            logger.warning("Malformed student row %s: %s", student_id, e)
            return None

    async def resolve_recipient_for_student(self, student_id: str) -> str | None:
        """Return the coach id responsible for a student, or None."""
        student = await self.get_student(student_id)
        if student is None or not student.coach_id:
            return None
        return student.coach_id

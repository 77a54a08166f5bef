# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification record and payload schemas.

A notification row in the hosted store looks like::

    {
        "id": "9f0c...",
        "coach_id": "c1",
        "type": "homework_completed",
        "title": "✅ Ayşe Ödev Tamamladı",
        "message": "\"Paragraf Seti\" ödevini bitirdi",
        "data": {"kind": "homework_completed", "student_id": "s1", ...},
        "is_read": false,
        "created_at": "2024-07-25T10:00:00+00:00"
    }

The ``data`` column holds a payload whose shape is fixed by the kind.
Payloads form a closed union discriminated by ``kind``; the delivery
path carries them without looking inside.
"""

import datetime as dt
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from lgscoach.models.coaching import StoreId
from lgscoach.utils.datetime import ensure_utc


class NotificationKind(str, Enum):
    """Kinds of coach notifications (values of the ``type`` column)."""

    DAILY_LOG_ADDED = "daily_log_added"
    HOMEWORK_COMPLETED = "homework_completed"
    DAILY_HOMEWORK_ALL_COMPLETED = "daily_homework_all_completed"
    TRIAL_EXAM_ADDED = "trial_exam_added"
    TEST = "test"


class DailyLogAddedPayload(BaseModel):
    """A student added (or merged into) a daily question log."""

    kind: Literal["daily_log_added"] = "daily_log_added"
    student_id: str
    student_name: str
    subject: str
    question_count: int = Field(description="Running total for the day after merging")
    added_count: int = Field(description="Questions added by this entry")
    date: dt.date


class HomeworkCompletedPayload(BaseModel):
    """A single homework item was marked complete."""

    kind: Literal["homework_completed"] = "homework_completed"
    student_id: str
    student_name: str
    homework_id: str
    homework_title: str
    date: dt.date


class DailyHomeworkAllCompletedPayload(BaseModel):
    """Every homework item of a student for one date is complete."""

    kind: Literal["daily_homework_all_completed"] = "daily_homework_all_completed"
    student_id: str
    student_name: str
    date: dt.date
    homework_titles: list[str]


class TrialExamAddedPayload(BaseModel):
    """A trial exam result was recorded."""

    kind: Literal["trial_exam_added"] = "trial_exam_added"
    student_id: str
    student_name: str
    exam_name: str
    date: dt.date
    total_correct: int
    total_incorrect: int
    total_blank: int = 0


class DiagnosticPayload(BaseModel):
    """Manually triggered test notification."""

    kind: Literal["test"] = "test"
    note: str = ""


NotificationPayload = Annotated[
    Union[
        DailyLogAddedPayload,
        HomeworkCompletedPayload,
        DailyHomeworkAllCompletedPayload,
        TrialExamAddedPayload,
        DiagnosticPayload,
    ],
    Field(discriminator="kind"),
]


class NotificationRecord(BaseModel):
    """One row of the notification table.

    Field aliases match the column names so rows from the REST API and
    realtime events validate directly.

    Attributes:
        id: Opaque unique identifier assigned by the store.
        recipient_id: Coach who should see the notification.
        kind: Notification kind; selects the title/body template.
        title: Rendered title.
        message: Rendered body.
        payload: Kind-specific auxiliary data.
        is_read: Whether the coach acknowledged it.
        created_at: Insertion timestamp (UTC).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: StoreId
    recipient_id: StoreId = Field(alias="coach_id")
    kind: NotificationKind = Field(alias="type")
    title: str
    message: str
    payload: NotificationPayload = Field(alias="data")
    is_read: bool = False
    created_at: dt.datetime

    @model_validator(mode="before")
    @classmethod
    def _inject_payload_kind(cls, values: Any) -> Any:
        # Rows written by older clients may store the payload without its tag.
        if isinstance(values, dict):
            kind = values.get("type", values.get("kind"))
            data = values.get("data", values.get("payload"))
            if data is None:
                data = {}
            if isinstance(data, dict) and "kind" not in data and kind is not None:
                kind_value = kind.value if isinstance(kind, NotificationKind) else kind
                values = {**values, "data": {**data, "kind": kind_value}}
                values.pop("payload", None)
        return values

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, value: dt.datetime) -> dt.datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _kind_matches_payload(self) -> "NotificationRecord":
        if self.payload.kind != self.kind.value:
            raise ValueError(
                f"payload kind {self.payload.kind!r} does not match record kind {self.kind.value!r}"
            )
        return self

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "NotificationRecord":
        """Build a record from a store row.

        Args:
            row: Row dictionary as returned by the REST API.

        Returns:
            Validated record.
        """
        return cls.model_validate(row)

    @property
    def tag(self) -> str:
        """Platform notification tag; one visible alert per record."""
        return f"coach-notification-{self.id}"

    def to_row(self) -> dict[str, Any]:
        """Serialize back to the column layout.

        Returns:
            JSON-compatible row dictionary.
        """
        return self.model_dump(mode="json", by_alias=True)


class NewNotification(BaseModel):
    """Insert shape for a notification row.

    ``id``, ``is_read`` and ``created_at`` are assigned by the store.
    """

    recipient_id: str = Field(serialization_alias="coach_id")
    kind: NotificationKind = Field(serialization_alias="type")
    title: str
    message: str
    payload: NotificationPayload = Field(serialization_alias="data")

    @model_validator(mode="after")
    def _kind_matches_payload(self) -> "NewNotification":
        if self.payload.kind != self.kind.value:
            raise ValueError(
                f"payload kind {self.payload.kind!r} does not match kind {self.kind.value!r}"
            )
        return self

    def to_row(self) -> dict[str, Any]:
        """Serialize to the insert body expected by the REST API."""
        row = self.model_dump(mode="json", by_alias=True)
        row["is_read"] = False
        return row

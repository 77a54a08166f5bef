# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Schemas for the coaching tables the notification triggers observe.

These mirror the rows of ``users``, ``daily_logs``, ``homework`` and
``trial_exams``/``trial_exam_details``. Only the columns the triggers
read are modeled; unknown columns are ignored.
"""

import datetime as dt
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _stringify_id(value: Any) -> Any:
    if isinstance(value, int):
        return str(value)
    return value


# Store ids may be bigint or uuid columns; both are handled as strings.
StoreId = Annotated[str, BeforeValidator(_stringify_id)]


class LGSSubject(str, Enum):
    """LGS exam subjects."""

    TURKCE = "Türkçe"
    MATEMATIK = "Matematik"
    FEN = "Fen Bilimleri"
    INKILAP = "T.C. İnkılap Tarihi"
    DIN = "Din Kültürü"
    INGILIZCE = "İngilizce"


class CoachIdentity(BaseModel):
    """Identity of the coach a session or worker acts for."""

    model_config = ConfigDict(populate_by_name=True)

    id: StoreId
    full_name: str = Field(alias="fullName")
    email: str = ""


class StudentRef(BaseModel):
    """A student row, reduced to what routing a notification needs."""

    model_config = ConfigDict(extra="ignore")

    id: StoreId
    full_name: str
    coach_id: StoreId | None = None


class DailyLog(BaseModel):
    """One (student, subject, date) question count."""

    model_config = ConfigDict(extra="ignore")

    id: StoreId
    student_id: StoreId
    subject: LGSSubject
    question_count: int
    date: dt.date


class Homework(BaseModel):
    """A homework item assigned to a student for a date."""

    model_config = ConfigDict(extra="ignore")

    id: StoreId
    student_id: StoreId
    coach_id: StoreId | None = None
    title: str
    description: str = ""
    date: dt.date
    is_completed: bool = False
    created_at: dt.datetime | None = None


class TrialExamSubjectDetail(BaseModel):
    """Per-subject breakdown of a trial exam."""

    subject: LGSSubject
    correct: int = 0
    incorrect: int = 0
    blank: int = 0


class TrialExamResult(BaseModel):
    """A trial exam result with optional per-subject details."""

    model_config = ConfigDict(extra="ignore")

    id: StoreId | None = None
    student_id: StoreId
    exam_name: str
    date: dt.date
    total_correct: int
    total_incorrect: int
    total_blank: int = 0
    details: list[TrialExamSubjectDetail] = Field(default_factory=list)

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic schemas for notification rows and coaching tables."""

from lgscoach.models.coaching import (
    CoachIdentity,
    DailyLog,
    Homework,
    LGSSubject,
    StudentRef,
    TrialExamResult,
    TrialExamSubjectDetail,
)
from lgscoach.models.notification import (
    DailyHomeworkAllCompletedPayload,
    DailyLogAddedPayload,
    DiagnosticPayload,
    HomeworkCompletedPayload,
    NewNotification,
    NotificationKind,
    NotificationPayload,
    NotificationRecord,
    TrialExamAddedPayload,
)

__all__ = [
    "CoachIdentity",
    "DailyLog",
    "Homework",
    "LGSSubject",
    "StudentRef",
    "TrialExamResult",
    "TrialExamSubjectDetail",
    "DailyHomeworkAllCompletedPayload",
    "DailyLogAddedPayload",
    "DiagnosticPayload",
    "HomeworkCompletedPayload",
    "NewNotification",
    "NotificationKind",
    "NotificationPayload",
    "NotificationRecord",
    "TrialExamAddedPayload",
]

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Title and body templates per notification kind.

Titles and bodies are rendered once, when the row is created, and stored
with it. The coach-facing language is Turkish.
"""

from typing import Any

from lgscoach.models.notification import (
    DailyHomeworkAllCompletedPayload,
    DailyLogAddedPayload,
    DiagnosticPayload,
    HomeworkCompletedPayload,
    NotificationKind,
    NotificationPayload,
    TrialExamAddedPayload,
)

DATE_FORMAT = "%d.%m.%Y"

TEMPLATES: dict[NotificationKind, tuple[str, str]] = {
    NotificationKind.DAILY_LOG_ADDED: (
        "📚 {student_name} Çalışma Ekledi",
        "{subject} dersinden {question_count} soru çözdü",
    ),
    NotificationKind.HOMEWORK_COMPLETED: (
        "✅ {student_name} Ödev Tamamladı",
        '"{homework_title}" ödevini bitirdi',
    ),
    NotificationKind.DAILY_HOMEWORK_ALL_COMPLETED: (
        "🎉 {student_name} Günün Tüm Ödevlerini Tamamladı",
        "{date_label} tarihli {homework_count} ödevin tamamını bitirdi: {homework_list}",
    ),
    NotificationKind.TRIAL_EXAM_ADDED: (
        "📊 {student_name} Deneme Sınavı",
        "{exam_name} sınavında {total_correct} doğru, {total_incorrect} yanlış yaptı",
    ),
    NotificationKind.TEST: (
        "🔔 Test Bildirimi",
        "{note}",
    ),
}

DEFAULT_TEST_NOTE = "Bildirimler çalışıyor"


def _context(payload: NotificationPayload) -> dict[str, Any]:
    context = payload.model_dump()
    if isinstance(payload, (DailyLogAddedPayload, HomeworkCompletedPayload,
                            DailyHomeworkAllCompletedPayload, TrialExamAddedPayload)):
        context["date_label"] = payload.date.strftime(DATE_FORMAT)
    if isinstance(payload, DailyHomeworkAllCompletedPayload):
        context["homework_count"] = len(payload.homework_titles)
        context["homework_list"] = ", ".join(payload.homework_titles)
    if isinstance(payload, DiagnosticPayload):
        context["note"] = payload.note or DEFAULT_TEST_NOTE
    return context


def render(payload: NotificationPayload) -> tuple[str, str]:
    """Render (title, message) for a payload.

    Args:
        payload: Kind-specific payload.

    Returns:
        Tuple of (title, message).
    """
    title_template, message_template = TEMPLATES[NotificationKind(payload.kind)]
    context = _context(payload)
    return title_template.format(**context), message_template.format(**context)

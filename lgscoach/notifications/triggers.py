# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student activity writes that produce coach notifications.

ActivityNotifier performs the minimal writes the notification rules
depend on and decides when a notification is due:

- add_daily_log: merges a (student, subject, date) entry into one row
  and notifies with the merged running count.
- set_homework_completed: notifies on a false->true transition and then
  re-reads the student's homework for that date; when every row is
  complete it sends the all-completed notification too.
- add_trial_exam: stores the exam and its per-subject rows and notifies
  with the totals.
- send_test_notification: a manual diagnostic notification.

Writes to the activity tables raise StoreError. Notification failures
never do; they are logged so the student's own write is unaffected. A
student without a coach produces no notification.
"""

import datetime as dt
import logging
from typing import Callable

from pydantic import ValidationError

from lgscoach.core.exceptions import StoreError, UnresolvedRecipientError
from lgscoach.infrastructure.supabase.rest import PostgrestClient
from lgscoach.models.coaching import (
    DailyLog,
    Homework,
    LGSSubject,
    StudentRef,
    TrialExamResult,
)
from lgscoach.models.notification import (
    DailyHomeworkAllCompletedPayload,
    DailyLogAddedPayload,
    DiagnosticPayload,
    HomeworkCompletedPayload,
    NotificationKind,
    NotificationPayload,
    NotificationRecord,
    TrialExamAddedPayload,
)
from lgscoach.notifications.repository import NotificationRepository
from lgscoach.notifications.templates import render

logger = logging.getLogger(__name__)

DAILY_LOGS_TABLE = "daily_logs"
HOMEWORK_TABLE = "homework"
TRIAL_EXAMS_TABLE = "trial_exams"
TRIAL_EXAM_DETAILS_TABLE = "trial_exam_details"


class ActivityNotifier:
    """Records student activity and emits the matching notifications.

    Attributes:
        client: PostgREST client for the activity tables.
        repository: Notification repository used to create rows.
    """

    def __init__(
        self,
        client: PostgrestClient,
        repository: NotificationRepository | None = None,
    ) -> None:
        self.client = client
        self.repository = repository or NotificationRepository(client)

    async def _resolve_student(self, student_id: str) -> StudentRef:
        student = await self.repository.get_student(student_id)
        if student is None or not student.coach_id:
            raise UnresolvedRecipientError(student_id)
        return student

    async def _notify(
        self,
        student_id: str,
        build_payload: Callable[[StudentRef], NotificationPayload],
    ) -> NotificationRecord | None:
        """Create a notification for the student's coach.

        Args:
            student_id: Student whose activity triggered the notification.
            build_payload: Builds the payload once the student is known.

        Returns:
            The created record, or None when skipped or failed.
        """
        try:
            student = await self._resolve_student(student_id)
        except UnresolvedRecipientError as e:
            logger.info("Skipping notification: %s", e)
            return None

        payload = build_payload(student)
        title, message = render(payload)
        try:
            return await self.repository.create_notification(
                recipient_id=student.coach_id,
                kind=NotificationKind(payload.kind),
                title=title,
                message=message,
                payload=payload,
            )
        except StoreError as e:
            logger.error(
                "Failed to create %s notification for student %s: %s",
                payload.kind,
                student_id,
                e,
            )
            return None

    async def add_daily_log(
        self,
        student_id: str,
        subject: LGSSubject,
        question_count: int,
        date: dt.date,
    ) -> DailyLog:
        """Add questions to the student's log for a subject and date.

        An existing row for the same (student, subject, date) accumulates
        the count instead of getting a sibling row.

        Args:
            student_id: Student identifier.
            subject: LGS subject.
            question_count: Questions solved in this entry.
            date: Day of the entry.

        Returns:
            The merged log row.

        Raises:
            StoreError: If the log cannot be read or written.
        """
        subject = LGSSubject(subject)
        existing = await self.client.select_one(
            DAILY_LOGS_TABLE,
            filters={"student_id": student_id, "subject": subject, "date": date},
        )

        if existing:
            rows = await self.client.update(
                DAILY_LOGS_TABLE,
                values={"question_count": existing["question_count"] + question_count},
                filters={"id": existing["id"]},
            )
        else:
            rows = await self.client.insert(
                DAILY_LOGS_TABLE,
                {
                    "student_id": student_id,
                    "subject": subject.value,
                    "question_count": question_count,
                    "date": date.isoformat(),
                },
            )
        if not rows:
            raise StoreError("Daily log write returned no row", details={"student_id": student_id})

        log = DailyLog.model_validate(rows[0])
        await self._notify(
            student_id,
            lambda student: DailyLogAddedPayload(
                student_id=student.id,
                student_name=student.full_name,
                subject=log.subject.value,
                question_count=log.question_count,
                added_count=question_count,
                date=log.date,
            ),
        )
        return log

    async def set_homework_completed(
        self,
        homework_id: str,
        is_completed: bool = True,
    ) -> Homework:
        """Set a homework item's completion flag.

        Only a false->true transition notifies. After it, the student's
        homework for the same date is read again from the store; if every
        row is complete the all-completed notification follows.

        Args:
            homework_id: Homework identifier.
            is_completed: New completion state.

        Returns:
            The updated homework row.

        Raises:
            StoreError: If the homework is missing or cannot be updated.
        """
        current = await self.client.select_one(HOMEWORK_TABLE, filters={"id": homework_id})
        if current is None:
            raise StoreError(
                f"Homework {homework_id} not found",
                status_code=404,
                details={"homework_id": homework_id},
            )
        was_completed = bool(current.get("is_completed"))

        rows = await self.client.update(
            HOMEWORK_TABLE,
            values={"is_completed": is_completed},
            filters={"id": homework_id},
        )
        if not rows:
            raise StoreError(
                f"Homework {homework_id} not found",
                status_code=404,
                details={"homework_id": homework_id},
            )
        homework = Homework.model_validate(rows[0])

        if is_completed and not was_completed:
            await self._notify(
                homework.student_id,
                lambda student: HomeworkCompletedPayload(
                    student_id=student.id,
                    student_name=student.full_name,
                    homework_id=homework.id,
                    homework_title=homework.title,
                    date=homework.date,
                ),
            )
            await self._check_daily_homework_completion(homework.student_id, homework.date)

        return homework

    async def _check_daily_homework_completion(self, student_id: str, date: dt.date) -> None:
        try:
            rows = await self.client.select(
                HOMEWORK_TABLE,
                filters={"student_id": student_id, "date": date},
                order="created_at",
            )
        except StoreError as e:
            logger.error(
                "Failed to check daily homework for student %s on %s: %s",
                student_id,
                date,
                e,
            )
            return

        try:
            homework = [Homework.model_validate(row) for row in rows]
        except ValidationError as e:
            logger.error(
                "Malformed homework row for student %s on %s: %s",
                student_id,
                date,
                e,
            )
            return
        if not homework or not all(h.is_completed for h in homework):
            return

        logger.info("All %d homework items of %s done for %s", len(homework), student_id, date)
        await self._notify(
            student_id,
            lambda student: DailyHomeworkAllCompletedPayload(
                student_id=student.id,
                student_name=student.full_name,
                date=date,
                homework_titles=[h.title for h in homework],
            ),
        )

    async def add_trial_exam(self, exam: TrialExamResult) -> TrialExamResult:
        """Store a trial exam result and notify the coach.

        Detail rows are written after the main row; a failed detail write
        is logged and does not undo the exam.

        Args:
            exam: Exam result with optional per-subject details.

        Returns:
            The stored exam with its id.

        Raises:
            StoreError: If the main exam row cannot be written.
        """
        rows = await self.client.insert(
            TRIAL_EXAMS_TABLE,
            exam.model_dump(mode="json", exclude={"id", "details"}),
        )
        if not rows:
            raise StoreError("Trial exam insert returned no row", details={"student_id": exam.student_id})
        stored = exam.model_copy(update={"id": str(rows[0]["id"])})

        if exam.details:
            try:
                await self.client.insert(
                    TRIAL_EXAM_DETAILS_TABLE,
                    [
                        {"trial_exam_id": stored.id, **detail.model_dump(mode="json")}
                        for detail in exam.details
                    ],
                )
            except StoreError as e:
                logger.error("Failed to store details of trial exam %s: %s", stored.id, e)

        await self._notify(
            exam.student_id,
            lambda student: TrialExamAddedPayload(
                student_id=student.id,
                student_name=student.full_name,
                exam_name=stored.exam_name,
                date=stored.date,
                total_correct=stored.total_correct,
                total_incorrect=stored.total_incorrect,
                total_blank=stored.total_blank,
            ),
        )
        return stored

    async def send_test_notification(self, coach_id: str, note: str = "") -> NotificationRecord | None:
        """Create a diagnostic notification for a coach.

        Returns:
            The created record, or None if the insert failed.
        """
        payload = DiagnosticPayload(note=note)
        title, message = render(payload)
        try:
            return await self.repository.create_notification(
                recipient_id=coach_id,
                kind=NotificationKind(payload.kind),
                title=title,
                message=message,
                payload=payload,
            )
        except StoreError as e:
            logger.error("Failed to create test notification for %s: %s", coach_id, e)
            return None

# services/exam-service/src/apps/core/services/submission_service.py
"""
Submission Service

Attempt lifecycle per (exam, student): start or resume, submit and grade,
result history and expiry of abandoned attempts.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional, Tuple

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from ..exceptions import (
    AttemptsExhaustedError,
    ExamConflictError,
    ExamValidationError,
    SubmissionNotFoundError,
)
from ..events import publish_submission_expired
from ..models import Exam, ExamSubmission, SubmissionStatus
from ..notifications import NotificationDispatcher, notify_exam_result
from .exam_service import ExamService
from .grading import GradingEngine
from .stores import EnrollmentStore

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_GRACE_MINUTES = 5


def minutes_between(start: datetime, end: datetime) -> int:
    """Elapsed whole minutes, rounded half up."""
    seconds = Decimal(str(max((end - start).total_seconds(), 0)))
    return int((seconds / 60).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class SubmissionService:
    """
    Service for exam attempts.

    start() relies on the submission table's unique constraints rather than
    locks; submit() transitions with a conditional update so a concurrent
    submit cannot score the same attempt twice.
    """

    def __init__(
        self,
        grading_engine: Optional[GradingEngine] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.grading_engine = grading_engine or GradingEngine()
        self.dispatcher = dispatcher

    # =========================================================================
    # START
    # =========================================================================

    @transaction.atomic
    def start(self, exam_id, student_id, now: Optional[datetime] = None) -> Tuple[ExamSubmission, bool]:
        """
        Start a new attempt or resume the one in progress.

        Returns:
            (submission, created)

        Raises:
            ExamNotFoundError: Exam does not exist
            ExamValidationError: Exam is not published, or its deadline passed
                before a new attempt could start
            AttemptsExhaustedError: No attempts left
            ExamConflictError: A concurrent start won without leaving an
                attempt in progress
        """
        exam = ExamService.get_exam(exam_id)
        if not exam.is_published:
            raise ExamValidationError('Exam is not published')

        existing = self._find_in_progress(exam, student_id)
        if existing is not None:
            logger.info(
                f"Resumed attempt {existing.attempt_number} of exam {exam.id}",
                extra={'exam_id': str(exam.id), 'student_id': str(student_id)},
            )
            return existing, False

        now = now or timezone.now()
        if exam.deadline is not None and now > exam.deadline:
            raise ExamValidationError('The exam deadline has passed')

        used = ExamSubmission.objects.filter(exam=exam, student_id=student_id).count()
        if used >= exam.max_attempts:
            raise AttemptsExhaustedError(
                'Maximum attempts reached',
                extra_data={'max_attempts': exam.max_attempts, 'attempts_used': used},
            )

        try:
            with transaction.atomic():
                submission = ExamSubmission.objects.create(
                    exam=exam,
                    student_id=student_id,
                    attempt_number=used + 1,
                    start_time=now,
                    status=SubmissionStatus.IN_PROGRESS,
                )
        except IntegrityError:
            winner = self._find_in_progress(exam, student_id)
            if winner is not None:
                logger.info(
                    f"Concurrent start on exam {exam.id} resolved to attempt {winner.attempt_number}",
                    extra={'exam_id': str(exam.id), 'student_id': str(student_id)},
                )
                return winner, False
            logger.warning(
                f"Concurrent start on exam {exam.id} lost the race",
                extra={'exam_id': str(exam.id), 'student_id': str(student_id)},
            )
            raise ExamConflictError('Another attempt was started concurrently, please retry')

        logger.info(
            f"Started attempt {submission.attempt_number} of exam {exam.id}",
            extra={'exam_id': str(exam.id), 'student_id': str(student_id), 'submission_id': str(submission.id)},
        )
        return submission, True

    # =========================================================================
    # SUBMIT
    # =========================================================================

    @transaction.atomic
    def submit(
        self,
        exam_id,
        student_id,
        answers: Iterable[Dict[str, Any]],
        now: Optional[datetime] = None,
    ) -> ExamSubmission:
        """
        Grade and close the in-progress attempt.

        Raises:
            ExamNotFoundError: Exam does not exist
            SubmissionNotFoundError: No attempt in progress
            ExamValidationError: Answers reference unknown or repeated questions
            ExamConflictError: The attempt was closed by a concurrent request
        """
        exam = ExamService.get_exam(exam_id)
        submission = self._find_in_progress(exam, student_id)
        if submission is None:
            raise SubmissionNotFoundError('Active submission not found')

        result = self.grading_engine.grade(exam, list(answers))
        end_time = now or timezone.now()

        updated = ExamSubmission.objects.filter(
            id=submission.id,
            status=SubmissionStatus.IN_PROGRESS,
        ).update(
            answers=result.answers,
            score=result.score,
            percentage=result.percentage,
            passed=result.passed,
            end_time=end_time,
            time_spent=minutes_between(submission.start_time, end_time),
            status=SubmissionStatus.SUBMITTED,
            updated_at=timezone.now(),
        )
        if updated == 0:
            raise ExamConflictError('Submission was already submitted')

        submission.refresh_from_db()

        logger.info(
            f"Submitted attempt {submission.attempt_number} of exam {exam.id}: "
            f"{submission.score}/{exam.total_points} ({submission.percentage}%)",
            extra={
                'exam_id': str(exam.id),
                'submission_id': str(submission.id),
                'passed': submission.passed,
            },
        )

        notify_exam_result(
            exam,
            submission,
            EnrollmentStore.get_student(exam.course_id, student_id),
            self.dispatcher,
        )
        return submission

    # =========================================================================
    # QUERIES
    # =========================================================================

    def results(self, exam_id, student_id):
        """The student's attempts at an exam, most recent first."""
        return ExamSubmission.objects.filter(
            exam_id=exam_id,
            student_id=student_id,
        ).order_by('-attempt_number')

    def _find_in_progress(self, exam: Exam, student_id) -> Optional[ExamSubmission]:
        return ExamSubmission.objects.filter(
            exam=exam,
            student_id=student_id,
            status=SubmissionStatus.IN_PROGRESS,
        ).first()

    # =========================================================================
    # EXPIRY
    # =========================================================================

    def expire_overdue(self, now: Optional[datetime] = None) -> int:
        """
        Expire in-progress attempts past the exam deadline, past their
        duration plus the grace period, or whose exam has been deleted.

        Returns:
            Number of submissions expired
        """
        now = now or timezone.now()
        grace = timedelta(minutes=getattr(settings, 'EXAM_EXPIRY_GRACE_MINUTES', DEFAULT_EXPIRY_GRACE_MINUTES))

        expired = 0
        for submission in self._overdue(now, grace).iterator():
            updated = ExamSubmission.objects.filter(
                id=submission.id,
                status=SubmissionStatus.IN_PROGRESS,
            ).update(
                status=SubmissionStatus.EXPIRED,
                end_time=now,
                time_spent=minutes_between(submission.start_time, now),
                updated_at=now,
            )
            if updated:
                expired += updated
                publish_submission_expired(submission, now)

        if expired:
            logger.info(f"Expired {expired} overdue submissions")
        return expired

    def _overdue(self, now: datetime, grace: timedelta):
        # Subqueries only: a join on exam would drop orphaned rows
        in_progress = ExamSubmission.objects.filter(status=SubmissionStatus.IN_PROGRESS)
        exams = Exam.objects.order_by()

        overdue = ~Q(exam_id__in=exams.values('id'))
        overdue |= Q(exam_id__in=exams.filter(deadline__lt=now).values('id'))

        durations = (
            exams.filter(id__in=in_progress.values('exam_id'))
            .values_list('duration_minutes', flat=True)
            .distinct()
        )
        for minutes in durations:
            overdue |= Q(
                exam_id__in=exams.filter(duration_minutes=minutes).values('id'),
                start_time__lt=now - grace - timedelta(minutes=minutes),
            )

        return in_progress.filter(overdue).order_by('start_time')

# services/exam-service/src/apps/core/services/exam_service.py
"""
Exam Service

Business logic for exam definitions: visibility, creation behind slot
authorization, point totals and the one-way publish transition.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from ..capabilities import Actor, ActorRole, ExamAction, can_perform
from ..exceptions import (
    ExamAuthorizationError,
    ExamNotFoundError,
    ExamValidationError,
    SlotNotAuthorizedError,
)
from ..events import publish_exam_created, publish_exam_published
from ..models import Audience, Exam, ExamQuestion, ExamSubmission
from ..notifications import notify_exam_scheduled, schedule_exam_announcement
from .availability import resolve_availability
from .slot_service import SlotAuthorizationValidator
from .stores import CourseStore, EnrollmentStore

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_POINTS = 100

QUESTION_FIELDS = ('text', 'question_type', 'options', 'correct_answer', 'points', 'difficulty')


def compute_total_points(
    questions: Optional[Sequence[Dict[str, Any]]],
    explicit_total: Optional[int] = None,
    current_total: Optional[int] = None,
) -> int:
    """
    Total points for an exam.

    The sum of question points whenever questions are present, otherwise the
    explicit value, then the current value, then the configured default.
    """
    if questions:
        return sum(int(q.get('points', 1)) for q in questions)
    if explicit_total is not None:
        return int(explicit_total)
    if current_total is not None:
        return current_total
    return getattr(settings, 'EXAM_DEFAULT_TOTAL_POINTS', DEFAULT_TOTAL_POINTS)


def _validate_schedule(scheduled_date: Optional[datetime], deadline: Optional[datetime]) -> None:
    if scheduled_date and deadline and deadline < scheduled_date:
        raise ExamValidationError('Deadline cannot be earlier than the scheduled date')


class ExamService:
    """Service for managing exam definitions."""

    # =========================================================================
    # QUERIES
    # =========================================================================

    @staticmethod
    def base_queryset():
        return Exam.objects.select_related('course').prefetch_related('questions')

    @staticmethod
    def list_exams(actor: Actor):
        """
        Exams visible to an authority or organization actor.

        Organizations see exams on courses they instruct, exams targeted to
        them and open exams.
        """
        if not can_perform(actor, ExamAction.LIST):
            raise ExamAuthorizationError('Only authority or organization accounts can list exams')

        queryset = ExamService.base_queryset()

        if actor.is_organization:
            queryset = queryset.filter(
                Q(course__instructor_id=actor.organization_id) |
                Q(target_organization_id=actor.organization_id) |
                Q(audience=Audience.OPEN)
            )

        return queryset.order_by('-scheduled_date', '-created_at')

    @staticmethod
    def list_course_exams(course_id):
        """Published exams of a course."""
        return ExamService.base_queryset().filter(
            course_id=course_id,
            is_published=True,
        ).order_by('scheduled_date', 'created_at')

    @staticmethod
    def list_student_exams(actor: Actor, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Published exams for the student's active enrollments, each with the
        latest submission and the derived availability status.
        """
        if not can_perform(actor, ExamAction.TAKE):
            raise ExamAuthorizationError('Only students have exam listings')

        now = now or timezone.now()
        course_ids = EnrollmentStore.active_course_ids(actor.id)

        exams = list(
            ExamService.base_queryset().filter(
                course_id__in=course_ids,
                is_published=True,
            ).order_by('scheduled_date', 'created_at')
        )

        latest = {}
        submissions = ExamSubmission.objects.filter(
            exam_id__in=[e.id for e in exams],
            student_id=actor.id,
        ).order_by('attempt_number')
        for submission in submissions:
            latest[submission.exam_id] = submission

        listing = []
        for exam in exams:
            submission = latest.get(exam.id)
            availability = resolve_availability(exam, submission, now)
            listing.append({
                'exam': exam,
                'submission': submission,
                'status': availability.status,
                'attempts_used': availability.attempts_used,
            })
        return listing

    @staticmethod
    def get_exam(exam_id, for_update: bool = False) -> Exam:
        """
        Get exam by ID.

        Raises:
            ExamNotFoundError: Exam does not exist
        """
        queryset = Exam.objects.select_for_update() if for_update else ExamService.base_queryset()
        try:
            return queryset.get(id=exam_id)
        except (Exam.DoesNotExist, ValueError, DjangoValidationError):
            raise ExamNotFoundError(f"Exam {exam_id} not found")

    # =========================================================================
    # COMMANDS
    # =========================================================================

    @staticmethod
    @transaction.atomic
    def create_exam(
        actor: Actor,
        course_id,
        title: str,
        duration_minutes: int,
        questions: Optional[List[Dict[str, Any]]] = None,
        total_points: Optional[int] = None,
        target_organization_id=None,
        mandated_slot_id=None,
        **fields
    ) -> Exam:
        """
        Create an exam.

        Organizations must bind to an authority slot, either by
        mandated_slot_id or by a scheduled_date inside the tolerance window.

        Raises:
            ExamAuthorizationError: Actor may not create exams
            SlotNotAuthorizedError: No authority slot matched
            ExamValidationError: Course unknown or schedule inconsistent
        """
        if not can_perform(actor, ExamAction.CREATE):
            raise ExamAuthorizationError('Only authority or organization accounts can create exams')

        course = CourseStore.get(course_id)

        slot = None
        if actor.is_organization:
            decision = SlotAuthorizationValidator().authorize(
                actor,
                course.id,
                proposed_time=fields.get('scheduled_date'),
                slot_id=mandated_slot_id,
            )
            if not decision.allowed:
                raise SlotNotAuthorizedError(f"Unauthorized: {decision.reason}")
            slot = decision.slot
            if slot is not None and fields.get('scheduled_date') is None:
                fields['scheduled_date'] = slot.scheduled_date

        _validate_schedule(fields.get('scheduled_date'), fields.get('deadline'))

        publish = bool(fields.pop('is_published', False))

        exam = Exam(
            course=course,
            title=title,
            duration_minutes=duration_minutes,
            created_by=actor.id,
            author_role=actor.role,
            mandated_slot=slot,
            total_points=compute_total_points(questions, total_points),
            **fields
        )
        exam.set_audience(target_organization_id)
        if publish:
            exam.mark_published()
        exam.save()

        if questions:
            ExamService._replace_questions(exam, questions)

        logger.info(
            f"Created exam: {exam.id} - {exam.title}",
            extra={
                'exam_id': str(exam.id),
                'course_id': str(course.id),
                'author_role': actor.role,
                'slot_id': str(slot.id) if slot else None,
            },
        )

        transaction.on_commit(lambda: publish_exam_created(exam))

        if actor.is_authority and course.instructor_role == ActorRole.ORGANIZATION:
            ExamService._notify_instructor(exam)

        if exam.is_published:
            transaction.on_commit(lambda: publish_exam_published(exam))
            ExamService._announce(exam)

        return exam

    @staticmethod
    @transaction.atomic
    def update_exam(
        actor: Actor,
        exam_id,
        questions: Optional[List[Dict[str, Any]]] = None,
        **fields
    ) -> Exam:
        """
        Update an exam.

        Supplied questions replace the whole question set. Publishing
        (false to true) triggers exactly one announcement; published exams
        cannot be unpublished.

        Raises:
            ExamNotFoundError: Exam does not exist
            ExamAuthorizationError: Actor is neither owner nor authority
            ExamValidationError: Unpublish attempt or schedule inconsistent
        """
        exam = ExamService.get_exam(exam_id, for_update=True)

        if not can_perform(actor, ExamAction.UPDATE, exam):
            raise ExamAuthorizationError('Only the exam author or an administrator can update this exam')

        was_published = exam.is_published
        publish = fields.pop('is_published', None)
        if publish is False and was_published:
            raise ExamValidationError('Published exams cannot be unpublished')

        explicit_total = fields.pop('total_points', None)

        if 'target_organization_id' in fields:
            exam.set_audience(fields.pop('target_organization_id'))

        for field, value in fields.items():
            setattr(exam, field, value)

        _validate_schedule(exam.scheduled_date, exam.deadline)

        if questions is not None:
            ExamService._replace_questions(exam, questions)
            exam.total_points = compute_total_points(questions, explicit_total, exam.total_points)
        elif exam.questions.exists():
            exam.total_points = sum(exam.questions.values_list('points', flat=True))
        elif explicit_total is not None:
            exam.total_points = explicit_total

        if publish and not was_published:
            exam.mark_published()

        exam.save()

        logger.info(
            f"Updated exam: {exam.id}",
            extra={'exam_id': str(exam.id), 'published': exam.is_published},
        )

        if exam.is_published and not was_published:
            transaction.on_commit(lambda: publish_exam_published(exam))
            ExamService._announce(exam)

        return ExamService.get_exam(exam.id)

    @staticmethod
    @transaction.atomic
    def delete_exam(actor: Actor, exam_id) -> None:
        """
        Delete an exam. Its submissions are kept.
        """
        exam = ExamService.get_exam(exam_id, for_update=True)

        if not can_perform(actor, ExamAction.DELETE, exam):
            raise ExamAuthorizationError('Only the exam author or an administrator can delete this exam')

        exam_pk = exam.id
        exam.delete()
        logger.info(f"Deleted exam: {exam_pk}", extra={'exam_id': str(exam_pk), 'actor_id': actor.id})

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _replace_questions(exam: Exam, questions: List[Dict[str, Any]]) -> None:
        exam.questions.all().delete()
        ExamQuestion.objects.bulk_create([
            ExamQuestion(
                exam=exam,
                sort_order=index,
                **{k: q[k] for k in QUESTION_FIELDS if k in q}
            )
            for index, q in enumerate(questions)
        ])

    @staticmethod
    def _announce(exam: Exam) -> bool:
        """Queue the examScheduled fan-out to the course's active students."""
        return schedule_exam_announcement(exam)

    @staticmethod
    def _notify_instructor(exam: Exam) -> None:
        instructor = CourseStore.instructor(exam.course)
        if instructor is None:
            return
        notify_exam_scheduled(exam, [instructor])

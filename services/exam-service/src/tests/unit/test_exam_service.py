# services/exam-service/src/tests/unit/test_exam_service.py
"""
Unit Tests for ExamService
"""

import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from apps.core.exceptions import (
    ExamAuthorizationError,
    ExamNotFoundError,
    ExamValidationError,
    SlotNotAuthorizedError,
)
from apps.core.models import Audience, Course, Exam, ExamSubmission, SubmissionStatus
from apps.core.notifications import NotificationKind
from apps.core.services import ExamService, compute_total_points
from apps.core.services.availability import AvailabilityStatus


class TestComputeTotalPoints:

    def test_sum_of_question_points(self):
        assert compute_total_points([{'points': 4}, {'points': 6}], explicit_total=50) == 10

    def test_explicit_total_without_questions(self):
        assert compute_total_points([], explicit_total=40) == 40

    def test_current_total_kept(self):
        assert compute_total_points(None, current_total=25) == 25

    def test_default(self):
        assert compute_total_points(None) == 100


@pytest.mark.django_db
class TestCreateExam:
    """Tests for ExamService.create_exam."""

    def test_authority_creates_with_question_total(self, authority, course, sample_question_data):
        exam = ExamService.create_exam(
            authority,
            course_id=course.id,
            title='Final',
            duration_minutes=90,
            questions=sample_question_data,
            total_points=500,
        )

        assert exam.total_points == 10
        assert exam.author_role == authority.role
        assert exam.audience == Audience.OPEN
        assert exam.target_organization_id is None
        assert exam.is_published is False
        assert [q.sort_order for q in exam.questions.all()] == [0, 1]

    def test_default_total_without_questions(self, authority, course):
        exam = ExamService.create_exam(authority, course_id=course.id, title='Quiz', duration_minutes=10)

        assert exam.total_points == 100

    def test_targeted_audience(self, authority, course, organization_id):
        exam = ExamService.create_exam(
            authority,
            course_id=course.id,
            title='Targeted',
            duration_minutes=30,
            target_organization_id=organization_id,
        )

        assert exam.audience == Audience.TARGETED
        assert exam.target_organization_id == organization_id

    def test_student_cannot_create(self, student, course):
        with pytest.raises(ExamAuthorizationError):
            ExamService.create_exam(student, course_id=course.id, title='Nope', duration_minutes=10)

    def test_unknown_course(self, authority):
        with pytest.raises(ExamValidationError):
            ExamService.create_exam(authority, course_id=uuid.uuid4(), title='X', duration_minutes=10)

    def test_deadline_before_schedule_rejected(self, authority, course):
        now = timezone.now()

        with pytest.raises(ExamValidationError):
            ExamService.create_exam(
                authority,
                course_id=course.id,
                title='Backwards',
                duration_minutes=10,
                scheduled_date=now,
                deadline=now - timedelta(hours=1),
            )

    def test_organization_without_slot_denied(self, organization, course):
        with pytest.raises(SlotNotAuthorizedError):
            ExamService.create_exam(
                organization,
                course_id=course.id,
                title='Unbound',
                duration_minutes=30,
                scheduled_date=timezone.now() + timedelta(days=3),
            )
        assert not Exam.objects.filter(title='Unbound').exists()

    def test_organization_binds_by_time(self, organization, course, create_exam):
        start = timezone.now() + timedelta(days=3)
        slot = create_exam(scheduled_date=start, is_published=False)

        exam = ExamService.create_exam(
            organization,
            course_id=course.id,
            title='Bound',
            duration_minutes=30,
            scheduled_date=start + timedelta(seconds=60),
        )

        assert exam.mandated_slot == slot
        assert exam.author_role == organization.role
        assert str(exam.created_by) == organization.id

    def test_organization_binds_by_slot_id_and_inherits_schedule(self, organization, course, create_exam):
        start = (timezone.now() + timedelta(days=5)).replace(microsecond=0)
        slot = create_exam(scheduled_date=start, is_published=False)

        exam = ExamService.create_exam(
            organization,
            course_id=course.id,
            title='Bound by id',
            duration_minutes=30,
            mandated_slot_id=slot.id,
        )

        assert exam.mandated_slot == slot
        assert exam.scheduled_date == start

    def test_publish_on_create_announces(self, authority, course, create_enrollment, outbox):
        create_enrollment()
        create_enrollment()

        ExamService.create_exam(
            authority, course_id=course.id, title='Live', duration_minutes=20, is_published=True
        )

        students = [m for m in outbox.sent(NotificationKind.EXAM_SCHEDULED)
                    if m['recipient'].id != str(course.instructor_id)]
        assert len(students) == 2

    def test_authority_exam_notifies_organization_instructor(self, authority, course, outbox):
        ExamService.create_exam(authority, course_id=course.id, title='Draft', duration_minutes=20)

        sent = outbox.sent(NotificationKind.EXAM_SCHEDULED)
        assert len(sent) == 1
        assert sent[0]['recipient'].id == str(course.instructor_id)
        assert sent[0]['recipient'].email == course.instructor_email


@pytest.mark.django_db
class TestUpdateExam:
    """Tests for ExamService.update_exam."""

    def test_questions_replace_and_recompute_total(self, authority, published_exam):
        exam = ExamService.update_exam(authority, published_exam.id, questions=[
            {'text': 'Only question', 'question_type': 'essay', 'points': 7},
        ])

        assert exam.total_points == 7
        assert exam.questions.count() == 1

    def test_explicit_total_ignored_when_questions_exist(self, authority, published_exam):
        exam = ExamService.update_exam(authority, published_exam.id, total_points=99)

        assert exam.total_points == 15

    def test_explicit_total_without_questions(self, authority, create_exam):
        exam = create_exam(total_points=100)

        updated = ExamService.update_exam(authority, exam.id, total_points=40)

        assert updated.total_points == 40

    def test_publish_fans_out_exactly_once(self, authority, create_exam, create_enrollment, outbox):
        create_enrollment()
        create_enrollment()
        create_enrollment(status='cancelled')
        exam = create_exam(is_published=False)

        ExamService.update_exam(authority, exam.id, is_published=True)
        ExamService.update_exam(authority, exam.id, is_published=True, title='Renamed')

        assert len(outbox.sent(NotificationKind.EXAM_SCHEDULED)) == 2
        exam.refresh_from_db()
        assert exam.is_published is True
        assert exam.published_at is not None

    def test_publish_queues_single_announcement(
        self, settings, authority, create_exam, create_enrollment, django_capture_on_commit_callbacks
    ):
        settings.EXAM_NOTIFICATION_DISPATCHER = 'apps.core.notifications.CeleryNotificationDispatcher'
        for _ in range(25):
            create_enrollment()
        exam = create_exam(is_published=False)

        with patch('apps.core.tasks.announce_published_exam.delay') as announce, \
                patch('apps.core.tasks.deliver_notification.delay') as deliver:
            with django_capture_on_commit_callbacks(execute=True):
                ExamService.update_exam(authority, exam.id, is_published=True)

        announce.assert_called_once_with(str(exam.id))
        deliver.assert_not_called()

    def test_unpublish_rejected(self, authority, published_exam):
        with pytest.raises(ExamValidationError):
            ExamService.update_exam(authority, published_exam.id, is_published=False)

    def test_owner_can_update(self, organization, create_exam):
        exam = create_exam(created_by=organization.id, author_role=organization.role)

        updated = ExamService.update_exam(organization, exam.id, title='Renamed')

        assert updated.title == 'Renamed'

    def test_other_organization_cannot_update(self, other_organization, create_exam, organization):
        exam = create_exam(created_by=organization.id, author_role=organization.role)

        with pytest.raises(ExamAuthorizationError):
            ExamService.update_exam(other_organization, exam.id, title='Hijacked')

    def test_organization_cannot_update_authority_slot(self, organization, published_exam):
        with pytest.raises(ExamAuthorizationError):
            ExamService.update_exam(organization, published_exam.id, title='Mine now')

    def test_clear_target_opens_audience(self, authority, create_exam):
        exam = create_exam(audience=Audience.TARGETED, target_organization_id=uuid.uuid4())

        updated = ExamService.update_exam(authority, exam.id, target_organization_id=None)

        assert updated.audience == Audience.OPEN
        assert updated.target_organization_id is None

    def test_missing_exam(self, authority):
        with pytest.raises(ExamNotFoundError):
            ExamService.update_exam(authority, uuid.uuid4(), title='Ghost')


@pytest.mark.django_db
class TestDeleteExam:
    """Tests for ExamService.delete_exam."""

    def test_delete_keeps_submissions(self, authority, published_exam, student_id):
        ExamSubmission.objects.create(
            exam=published_exam,
            student_id=student_id,
            attempt_number=1,
            start_time=timezone.now(),
            status=SubmissionStatus.SUBMITTED,
        )

        ExamService.delete_exam(authority, published_exam.id)

        assert not Exam.objects.filter(id=published_exam.id).exists()
        assert ExamSubmission.objects.filter(exam_id=published_exam.id).count() == 1

    def test_non_owner_cannot_delete(self, organization, published_exam):
        with pytest.raises(ExamAuthorizationError):
            ExamService.delete_exam(organization, published_exam.id)


@pytest.mark.django_db
class TestExamQueries:
    """Tests for exam visibility and listings."""

    def test_authority_sees_all(self, authority, create_exam):
        create_exam(audience=Audience.TARGETED, target_organization_id=uuid.uuid4())
        create_exam()

        assert ExamService.list_exams(authority).count() == 2

    def test_organization_visibility(self, organization, create_exam):
        outside = Course.objects.create(title='Elsewhere', instructor_id=uuid.uuid4())

        own_course = create_exam(audience=Audience.TARGETED, target_organization_id=uuid.uuid4())
        targeted = create_exam(
            course=outside,
            audience=Audience.TARGETED,
            target_organization_id=organization.organization_id,
        )
        open_exam = create_exam(course=outside)
        hidden = create_exam(course=outside, audience=Audience.TARGETED, target_organization_id=uuid.uuid4())

        visible = set(ExamService.list_exams(organization).values_list('id', flat=True))

        assert visible == {own_course.id, targeted.id, open_exam.id}
        assert hidden.id not in visible

    def test_student_cannot_list(self, student):
        with pytest.raises(ExamAuthorizationError):
            ExamService.list_exams(student)

    def test_course_exams_published_only(self, course, create_exam):
        published = create_exam()
        create_exam(is_published=False)

        assert list(ExamService.list_course_exams(course.id)) == [published]

    def test_student_listing_statuses(self, student, enrollment, create_exam):
        now = timezone.now()
        upcoming = create_exam(scheduled_date=now + timedelta(days=1))
        missed = create_exam(scheduled_date=now - timedelta(days=2), deadline=now - timedelta(days=1))
        taken = create_exam(scheduled_date=now - timedelta(hours=2))
        create_exam(is_published=False)
        ExamSubmission.objects.create(
            exam=taken,
            student_id=student.id,
            attempt_number=1,
            start_time=now - timedelta(hours=1),
            status=SubmissionStatus.SUBMITTED,
            passed=True,
        )

        listing = {row['exam'].id: row for row in ExamService.list_student_exams(student, now=now)}

        assert set(listing) == {upcoming.id, missed.id, taken.id}
        assert listing[upcoming.id]['status'] == AvailabilityStatus.SCHEDULED
        assert listing[missed.id]['status'] == AvailabilityStatus.FAILED
        assert listing[taken.id]['status'] == AvailabilityStatus.COMPLETED
        assert listing[taken.id]['attempts_used'] == 1

    def test_student_listing_ignores_inactive_enrollments(self, student, create_enrollment, create_exam):
        create_enrollment(student_id=student.id, status='completed')
        create_exam()

        assert ExamService.list_student_exams(student) == []

    def test_get_exam_with_malformed_id(self):
        with pytest.raises(ExamNotFoundError):
            ExamService.get_exam('not-a-uuid')

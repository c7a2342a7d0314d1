# services/exam-service/src/apps/core/services/stores.py
"""
Course and Enrollment Stores

Read-only lookups over the course and enrollment read models.
"""

from typing import List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError

from ..exceptions import ExamValidationError
from ..models import Course, CourseEnrollment, EnrollmentStatus
from ..notifications import Recipient


def _recipient(enrollment: CourseEnrollment) -> Recipient:
    return Recipient(
        id=str(enrollment.student_id),
        name=enrollment.student_name,
        email=enrollment.student_email,
        phone=enrollment.student_phone,
    )


class CourseStore:
    """Course metadata lookups."""

    @staticmethod
    def get(course_id) -> Course:
        try:
            return Course.objects.get(id=course_id)
        except (Course.DoesNotExist, DjangoValidationError):
            raise ExamValidationError(f"Course {course_id} does not exist")

    @staticmethod
    def instructor(course: Course) -> Optional[Recipient]:
        if not course.instructor_id:
            return None
        return Recipient(
            id=str(course.instructor_id),
            name=course.instructor_name,
            email=course.instructor_email,
        )


class EnrollmentStore:
    """Active enrollment lookups."""

    @staticmethod
    def active_students(course_id) -> List[Recipient]:
        enrollments = CourseEnrollment.objects.filter(
            course_id=course_id,
            status=EnrollmentStatus.ACTIVE,
        ).order_by('enrolled_at')
        return [_recipient(e) for e in enrollments]

    @staticmethod
    def active_course_ids(student_id) -> List:
        return list(
            CourseEnrollment.objects.filter(
                student_id=student_id,
                status=EnrollmentStatus.ACTIVE,
            ).values_list('course_id', flat=True)
        )

    @staticmethod
    def get_student(course_id, student_id) -> Recipient:
        """Contact details for a student, falling back to the bare id."""
        enrollment = CourseEnrollment.objects.filter(
            course_id=course_id,
            student_id=student_id,
        ).first()
        if enrollment is None:
            return Recipient(id=str(student_id))
        return _recipient(enrollment)

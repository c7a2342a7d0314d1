# services/exam-service/src/apps/core/models/course.py
"""
Course Models

Read models for course metadata and enrollments. Rows are maintained by
the course and enrollment services; this service only reads them.
"""

import uuid

from django.db import models

from ..capabilities import ActorRole


class EnrollmentStatus(models.TextChoices):
    """Enrollment status choices."""
    ACTIVE = 'active', 'Active'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    SUSPENDED = 'suspended', 'Suspended'


class Course(models.Model):
    """Course and instructor metadata."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    title = models.CharField(max_length=255)

    # Instructor
    instructor_id = models.UUIDField(db_index=True)
    instructor_role = models.CharField(
        max_length=20,
        choices=ActorRole.choices,
        default=ActorRole.ORGANIZATION
    )
    instructor_name = models.CharField(max_length=255, blank=True, default='')
    instructor_email = models.EmailField(blank=True, default='')

    synced_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'exam_courses'
        ordering = ['title']

    def __str__(self):
        return self.title


class CourseEnrollment(models.Model):
    """Student enrollment in a course."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    course = models.ForeignKey(
        Course,
        on_delete=models.CASCADE,
        related_name='enrollments'
    )

    student_id = models.UUIDField(db_index=True)
    student_name = models.CharField(max_length=255, blank=True, default='')
    student_email = models.EmailField(blank=True, default='')
    student_phone = models.CharField(max_length=32, blank=True, default='')

    status = models.CharField(
        max_length=20,
        choices=EnrollmentStatus.choices,
        default=EnrollmentStatus.ACTIVE
    )
    enrolled_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'exam_course_enrollments'
        ordering = ['-enrolled_at']
        indexes = [
            models.Index(fields=['course', 'status']),
            models.Index(fields=['student_id', 'status']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['course', 'student_id'],
                name='unique_enrollment_per_course'
            )
        ]

    def __str__(self):
        return f"{self.student_id} in {self.course_id} ({self.status})"

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE

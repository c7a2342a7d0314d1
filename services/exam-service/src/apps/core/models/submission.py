# services/exam-service/src/apps/core/models/submission.py
"""
Submission Models

One row per student attempt at an exam.
"""

import uuid

from django.db import models

from .exam import Exam


class SubmissionStatus(models.TextChoices):
    """Submission status choices."""
    IN_PROGRESS = 'in-progress', 'In Progress'
    SUBMITTED = 'submitted', 'Submitted'
    GRADED = 'graded', 'Graded'
    EXPIRED = 'expired', 'Expired'


TERMINAL_GRADED_STATUSES = (SubmissionStatus.SUBMITTED, SubmissionStatus.GRADED)


class ExamSubmission(models.Model):
    """
    A student's attempt at an exam.

    The two unique constraints make start() safe under concurrency: at most
    one in-progress row per (exam, student) and no duplicate attempt numbers.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    # Submissions outlive their exam
    exam = models.ForeignKey(
        Exam,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='submissions'
    )
    student_id = models.UUIDField(db_index=True)
    attempt_number = models.PositiveIntegerField()

    status = models.CharField(
        max_length=20,
        choices=SubmissionStatus.choices,
        default=SubmissionStatus.IN_PROGRESS
    )

    answers = models.JSONField(default=list, blank=True)
    # Example: [{"question_id": "...", "answer": "4", "is_correct": true, "points_earned": 5}]

    # Timing
    start_time = models.DateTimeField()
    end_time = models.DateTimeField(null=True, blank=True)
    time_spent = models.PositiveIntegerField(null=True, blank=True)  # minutes

    # Results
    score = models.PositiveIntegerField(default=0)
    percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    passed = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'exam_submissions'
        ordering = ['-attempt_number']
        indexes = [
            models.Index(fields=['exam', 'student_id']),
            models.Index(fields=['status', 'start_time']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['exam', 'student_id', 'attempt_number'],
                name='unique_submission_attempt_number'
            ),
            models.UniqueConstraint(
                fields=['exam', 'student_id'],
                condition=models.Q(status=SubmissionStatus.IN_PROGRESS),
                name='unique_in_progress_submission'
            ),
        ]

    def __str__(self):
        return f"{self.exam_id} - Attempt {self.attempt_number} by {self.student_id}"

    @property
    def is_in_progress(self) -> bool:
        return self.status == SubmissionStatus.IN_PROGRESS

    @property
    def is_graded(self) -> bool:
        return self.status in TERMINAL_GRADED_STATUSES

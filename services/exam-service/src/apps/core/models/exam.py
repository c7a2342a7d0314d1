# services/exam-service/src/apps/core/models/exam.py
"""
Exam Models

Models for exam definitions, authority slots and questions.
"""

import random
import uuid
from typing import List, Optional

from django.db import models
from django.utils import timezone

from ..capabilities import ActorRole
from .course import Course


class ExamType(models.TextChoices):
    """Exam type choices."""
    QUIZ = 'quiz', 'Quiz'
    MIDTERM = 'midterm', 'Midterm'
    FINAL = 'final', 'Final Exam'
    ASSIGNMENT = 'assignment', 'Assignment'


class ExamMode(models.TextChoices):
    """Delivery mode choices."""
    DIGITAL = 'digital', 'Digital'
    PAPER_BASED = 'paper-based', 'Paper Based'


class Audience(models.TextChoices):
    """Which organizations may bind to an authority slot."""
    OPEN = 'open', 'Open to any organization'
    TARGETED = 'targeted', 'Targeted organization only'


class QuestionType(models.TextChoices):
    """Question type choices."""
    MULTIPLE_CHOICE = 'multiple-choice', 'Multiple Choice'
    TRUE_FALSE = 'true-false', 'True / False'
    SHORT_ANSWER = 'short-answer', 'Short Answer'
    ESSAY = 'essay', 'Essay'


class Difficulty(models.TextChoices):
    """Difficulty level choices."""
    EASY = 'easy', 'Easy'
    MEDIUM = 'medium', 'Medium'
    HARD = 'hard', 'Hard'


class Exam(models.Model):
    """
    Exam definition.

    Exams authored by the platform authority double as reservable slots
    that organizations bind their own exams to.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    # Relationships
    course = models.ForeignKey(
        Course,
        on_delete=models.PROTECT,
        related_name='exams'
    )
    mandated_slot = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='bound_exams'
    )

    # Authoring
    created_by = models.UUIDField(db_index=True)
    author_role = models.CharField(
        max_length=20,
        choices=ActorRole.choices
    )

    # Audience
    audience = models.CharField(
        max_length=20,
        choices=Audience.choices,
        default=Audience.OPEN
    )
    target_organization_id = models.UUIDField(null=True, blank=True)

    # Content
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    instructions = models.TextField(blank=True, default='')
    exam_type = models.CharField(
        max_length=20,
        choices=ExamType.choices,
        default=ExamType.QUIZ
    )
    exam_mode = models.CharField(
        max_length=20,
        choices=ExamMode.choices,
        default=ExamMode.DIGITAL
    )
    linked_paper_id = models.UUIDField(null=True, blank=True)

    # Scoring
    duration_minutes = models.PositiveIntegerField()
    total_points = models.PositiveIntegerField(default=100)
    passing_score = models.PositiveSmallIntegerField(default=70)
    max_attempts = models.PositiveSmallIntegerField(default=1)

    # Scheduling
    scheduled_date = models.DateTimeField(null=True, blank=True)
    deadline = models.DateTimeField(null=True, blank=True)

    # Options
    allow_review = models.BooleanField(default=True)
    shuffle_questions = models.BooleanField(default=False)

    # Status
    is_published = models.BooleanField(default=False)
    published_at = models.DateTimeField(null=True, blank=True)

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'exams'
        ordering = ['-scheduled_date']
        indexes = [
            models.Index(fields=['course', 'author_role', 'scheduled_date']),
            models.Index(fields=['course', 'is_published']),
            models.Index(fields=['target_organization_id']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(audience=Audience.OPEN, target_organization_id__isnull=True) |
                    models.Q(audience=Audience.TARGETED, target_organization_id__isnull=False)
                ),
                name='exam_audience_matches_target'
            ),
            models.CheckConstraint(
                condition=models.Q(max_attempts__gte=1),
                name='exam_max_attempts_positive'
            ),
        ]

    def __str__(self):
        return self.title

    @property
    def is_authority_slot(self) -> bool:
        """Authority-authored exams act as reservable slots."""
        return self.author_role == ActorRole.AUTHORITY

    def is_open_to(self, organization_id: Optional[str]) -> bool:
        if self.audience == Audience.OPEN:
            return True
        return organization_id is not None and str(self.target_organization_id) == str(organization_id)

    def set_audience(self, target_organization_id) -> None:
        """Targeted when an organization is given, open otherwise."""
        if target_organization_id:
            self.audience = Audience.TARGETED
            self.target_organization_id = target_organization_id
        else:
            self.audience = Audience.OPEN
            self.target_organization_id = None

    def mark_published(self) -> None:
        self.is_published = True
        if self.published_at is None:
            self.published_at = timezone.now()

    def questions_for(self, student_id: Optional[str] = None) -> List['ExamQuestion']:
        """
        Questions in delivery order.

        Shuffled exams use a per-student seed so a resumed attempt sees the
        same order.
        """
        questions = list(self.questions.all())
        if self.shuffle_questions and student_id:
            random.Random(f"{self.id}:{student_id}").shuffle(questions)
        return questions


class ExamQuestion(models.Model):
    """A question belonging to one exam."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    exam = models.ForeignKey(
        Exam,
        on_delete=models.CASCADE,
        related_name='questions'
    )
    sort_order = models.PositiveIntegerField(default=0)

    text = models.TextField()
    question_type = models.CharField(
        max_length=20,
        choices=QuestionType.choices,
        default=QuestionType.MULTIPLE_CHOICE
    )
    options = models.JSONField(default=list, blank=True)
    # Example: [{"text": "4", "is_correct": true}, {"text": "5", "is_correct": false}]
    correct_answer = models.TextField(blank=True, default='')
    points = models.PositiveIntegerField(default=1)
    difficulty = models.CharField(
        max_length=10,
        choices=Difficulty.choices,
        default=Difficulty.MEDIUM
    )

    class Meta:
        db_table = 'exam_questions'
        ordering = ['exam', 'sort_order']

    def __str__(self):
        return f"{self.exam_id} Q{self.sort_order + 1}"

    @property
    def is_multiple_choice(self) -> bool:
        return self.question_type == QuestionType.MULTIPLE_CHOICE

    @property
    def correct_option_texts(self) -> List[str]:
        return [o.get('text') for o in self.options or [] if o.get('is_correct')]

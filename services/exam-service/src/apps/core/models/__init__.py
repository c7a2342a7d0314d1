"""
Exam Service Models

Database models for exam scheduling, submissions and the course read models.
"""

from .course import Course, CourseEnrollment, EnrollmentStatus
from .exam import (
    Exam,
    ExamQuestion,
    ExamType,
    ExamMode,
    Audience,
    QuestionType,
    Difficulty,
)
from .submission import ExamSubmission, SubmissionStatus, TERMINAL_GRADED_STATUSES

__all__ = [
    # Course
    'Course',
    'CourseEnrollment',
    'EnrollmentStatus',
    # Exam
    'Exam',
    'ExamQuestion',
    'ExamType',
    'ExamMode',
    'Audience',
    'QuestionType',
    'Difficulty',
    # Submission
    'ExamSubmission',
    'SubmissionStatus',
    'TERMINAL_GRADED_STATUSES',
]

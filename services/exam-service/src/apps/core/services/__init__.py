"""
Exam Service Business Logic
"""

from .availability import Availability, AvailabilityStatus, resolve_availability
from .exam_service import ExamService, compute_total_points
from .grading import GradeResult, GradingEngine, grade_answers
from .slot_service import SlotAuthorizationValidator, SlotDecision
from .stores import CourseStore, EnrollmentStore
from .submission_service import SubmissionService

__all__ = [
    'Availability',
    'AvailabilityStatus',
    'resolve_availability',
    'ExamService',
    'compute_total_points',
    'GradeResult',
    'GradingEngine',
    'grade_answers',
    'SlotAuthorizationValidator',
    'SlotDecision',
    'CourseStore',
    'EnrollmentStore',
    'SubmissionService',
]

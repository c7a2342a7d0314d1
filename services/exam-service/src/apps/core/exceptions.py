# services/exam-service/src/apps/core/exceptions.py
"""
Exam Service Exceptions

Domain errors rendered by the shared exception handler.
"""

from rest_framework import status

from shared.common.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)


class ExamValidationError(BadRequestException):
    """Malformed input or an invalid state transition."""
    default_detail = 'Invalid exam data.'
    default_code = 'exam_validation_error'
    error_code = 'EXAM_VALIDATION_ERROR'


class ExamAuthorizationError(ForbiddenException):
    """Actor lacks the role or ownership required."""
    default_detail = 'You are not allowed to perform this action on the exam.'
    default_code = 'exam_forbidden'
    error_code = 'EXAM_FORBIDDEN'


class SlotNotAuthorizedError(ExamAuthorizationError):
    default_detail = 'No matching authority-mandated slot found.'
    default_code = 'no_matching_slot'
    error_code = 'NO_MATCHING_SLOT'


class ExamNotFoundError(NotFoundException):
    default_detail = 'Exam not found.'
    default_code = 'exam_not_found'
    error_code = 'EXAM_NOT_FOUND'


class SubmissionNotFoundError(NotFoundException):
    default_detail = 'Active submission not found.'
    default_code = 'submission_not_found'
    error_code = 'SUBMISSION_NOT_FOUND'


class AttemptsExhaustedError(BadRequestException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Maximum attempts reached.'
    default_code = 'attempts_exhausted'
    error_code = 'ATTEMPTS_EXHAUSTED'


class ExamConflictError(ConflictException):
    """Concurrent start or submit lost the race."""
    default_detail = 'The submission was modified by a concurrent request.'
    default_code = 'exam_conflict'
    error_code = 'EXAM_CONFLICT'

# shared/common/exceptions.py
"""
API exception hierarchy and the DRF exception handler.

Every error leaves the service in one envelope:

    {"success": false, "error": {"code": ..., "message": ..., "request_id": ..., "details": ...}}
"""

import logging
from typing import Any, Dict, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

STATUS_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: 'VALIDATION_ERROR',
    status.HTTP_401_UNAUTHORIZED: 'UNAUTHORIZED',
    status.HTTP_403_FORBIDDEN: 'FORBIDDEN',
    status.HTTP_404_NOT_FOUND: 'NOT_FOUND',
    status.HTTP_405_METHOD_NOT_ALLOWED: 'METHOD_NOT_ALLOWED',
    status.HTTP_409_CONFLICT: 'CONFLICT',
    status.HTTP_429_TOO_MANY_REQUESTS: 'RATE_LIMITED',
}


class BaseAPIException(APIException):
    """
    APIException carrying a stable machine-readable error_code and optional
    extra_data merged into the error body.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'An unexpected error occurred.'
    default_code = 'error'
    error_code = 'INTERNAL_ERROR'

    def __init__(
        self,
        detail: Optional[str] = None,
        code: Optional[str] = None,
        error_code: Optional[str] = None,
        extra_data: Optional[Dict[str, Any]] = None
    ):
        super().__init__(detail=detail, code=code)
        if error_code:
            self.error_code = error_code
        self.extra_data = extra_data or {}


class BadRequestException(BaseAPIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Bad request.'
    default_code = 'bad_request'
    error_code = 'BAD_REQUEST'


class ForbiddenException(BaseAPIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'forbidden'
    error_code = 'FORBIDDEN'


class NotFoundException(BaseAPIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'The requested resource was not found.'
    default_code = 'not_found'
    error_code = 'NOT_FOUND'


class ConflictException(BaseAPIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The resource was changed by another request.'
    default_code = 'conflict'
    error_code = 'CONFLICT'


def error_envelope(code: str, message: str, request_id: Optional[str], details: Any = None) -> Dict:
    error = {'code': code, 'message': message, 'request_id': request_id}
    if details:
        error['details'] = details
    return {'success': False, 'error': error}


def custom_exception_handler(exc, context) -> Optional[Response]:
    """
    DRF EXCEPTION_HANDLER.

    APIException subclasses, Http404 and PermissionDenied go through DRF
    first; Django ValidationError becomes a 400; anything else is logged and
    returned as INTERNAL_ERROR.
    """
    request = context.get('request')
    request_id = getattr(request, 'request_id', None)

    response = exception_handler(exc, context)
    if response is not None:
        response.data = error_envelope(
            error_code_for(exc, response.status_code),
            error_message(exc),
            request_id,
            error_details(exc),
        )
        return response

    if isinstance(exc, DjangoValidationError):
        details = exc.message_dict if hasattr(exc, 'error_dict') else {'non_field_errors': exc.messages}
        return Response(
            error_envelope('VALIDATION_ERROR', 'Validation error', request_id, details),
            status=status.HTTP_400_BAD_REQUEST
        )

    logger.exception(
        f"Unhandled {type(exc).__name__}: {exc}",
        extra={'request_id': request_id, 'exception_type': type(exc).__name__}
    )
    message = str(exc) if settings.DEBUG else 'An unexpected error occurred. Please try again later.'
    return Response(
        error_envelope('INTERNAL_ERROR', message, request_id),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def error_code_for(exc, status_code: int) -> str:
    code = getattr(exc, 'error_code', None)
    if code:
        return code
    return STATUS_ERROR_CODES.get(status_code, 'ERROR')


def error_message(exc) -> str:
    detail = getattr(exc, 'detail', None)
    if isinstance(detail, dict):
        return str(detail['detail']) if 'detail' in detail else 'Validation error'
    if isinstance(detail, list):
        return str(detail[0]) if detail else 'Validation error'
    if detail is not None:
        return str(detail)
    return str(exc)


def error_details(exc) -> Any:
    """Field errors from serializers, or extra_data supplied by the raiser."""
    extra_data = getattr(exc, 'extra_data', None)
    if extra_data:
        return extra_data
    detail = getattr(exc, 'detail', None)
    if isinstance(detail, dict) and 'detail' not in detail:
        return detail
    return None

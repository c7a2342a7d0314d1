# shared/common/middleware.py
"""
Request tracing and access logging.

The request id is kept in a context variable so that RequestIDLogFilter can
stamp it on every log record emitted while the request is handled.
"""

import contextvars
import logging
import time
import uuid
from typing import Callable, Optional

from django.http import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = 'X-Request-ID'
HEALTH_PATHS = ('/health/', '/health/ready/')

_request_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar('request_id', default=None)


def get_request_id() -> Optional[str]:
    return _request_id.get()


class RequestIDLogFilter(logging.Filter):
    """Adds request_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, 'request_id'):
            record.request_id = get_request_id()
        return True


class RequestIDMiddleware:
    """
    Assigns a request id, reusing the gateway's X-Request-ID when present,
    and echoes it on the response.
    """

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        request.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = _request_id.set(request.request_id)
        try:
            response = self.get_response(request)
        finally:
            _request_id.reset(token)

        response[REQUEST_ID_HEADER] = request.request_id
        return response


class LoggingMiddleware:
    """Logs one access line per request. Health probes are skipped."""

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        if request.path in HEALTH_PATHS:
            return self.get_response(request)

        started = time.monotonic()
        response = self.get_response(request)
        duration_ms = round((time.monotonic() - started) * 1000, 2)

        user = getattr(request, 'user', None)
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.path} {response.status_code} ({duration_ms}ms)",
            extra={
                'method': request.method,
                'path': request.path,
                'status_code': response.status_code,
                'duration_ms': duration_ms,
                'user_id': str(getattr(user, 'id', '') or ''),
                'ip_address': client_ip(request),
            }
        )

        response['X-Response-Time'] = f"{duration_ms}ms"
        return response


def client_ip(request: HttpRequest) -> str:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '')

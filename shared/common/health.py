# shared/common/health.py
"""
Liveness and readiness probes.

    from shared.common.health import get_health_urlpatterns
    urlpatterns += get_health_urlpatterns()
"""

import logging
import time
from typing import Any, Callable, Dict, List

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connection
from django.urls import path
from django.utils import timezone
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

logger = logging.getLogger(__name__)

HEALTHY = 'healthy'
UNHEALTHY = 'unhealthy'


def _probe(name: str, check: Callable[[], None]) -> Dict[str, Any]:
    started = time.monotonic()
    try:
        check()
    except Exception as e:  # backends raise their own client errors
        logger.error(f"Readiness check '{name}' failed: {e}")
        return {'name': name, 'status': UNHEALTHY, 'error': str(e)}
    return {
        'name': name,
        'status': HEALTHY,
        'latency_ms': round((time.monotonic() - started) * 1000, 2),
    }


def _database() -> None:
    with connection.cursor() as cursor:
        cursor.execute('SELECT 1')
        if cursor.fetchone() is None:
            raise DatabaseError('SELECT 1 returned no row')


def _cache() -> None:
    key = f'readiness:{time.monotonic_ns()}'
    cache.set(key, 'ok', 10)
    try:
        if cache.get(key) != 'ok':
            raise RuntimeError('cache read/write mismatch')
    finally:
        cache.delete(key)


READINESS_CHECKS = (
    ('database', _database),
    ('cache', _cache),
)


def run_readiness_checks() -> List[Dict[str, Any]]:
    return [_probe(name, check) for name, check in READINESS_CHECKS]


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def health_check(request):
    """Liveness: the process is serving requests."""
    return Response({
        'status': HEALTHY,
        'service': getattr(settings, 'SERVICE_NAME', 'unknown'),
        'timestamp': timezone.now().isoformat(),
    })


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def readiness_check(request):
    """Readiness: database and cache are reachable. 503 otherwise."""
    checks = run_readiness_checks()
    healthy = all(c['status'] == HEALTHY for c in checks)
    return Response(
        {
            'status': HEALTHY if healthy else UNHEALTHY,
            'service': getattr(settings, 'SERVICE_NAME', 'unknown'),
            'checks': checks,
            'timestamp': timezone.now().isoformat(),
        },
        status=200 if healthy else 503
    )


def get_health_urlpatterns():
    return [
        path('health/', health_check, name='health'),
        path('health/ready/', readiness_check, name='readiness'),
    ]

# services/exam-service/src/apps/core/events.py
"""
Exam Service Events

Domain events consumed by the real-time gateway and other services.
"""

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)


class EventType:
    """Event type constants for exam service."""

    EXAM_CREATED = 'exam.created'
    EXAM_PUBLISHED = 'exam.published'
    EXAM_SCHEDULED = 'exam.scheduled'
    EXAM_RESULT = 'exam.result'
    SUBMISSION_EXPIRED = 'submission.expired'


class JSONEncoder(json.JSONEncoder):
    """JSON encoder for event payloads."""

    def default(self, obj):
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


class EventPublisher:
    """
    Publishes exam events.

    Backends: 'log' (default) writes the event to the service log, 'redis'
    publishes on the cache Redis under EVENT_CHANNEL_PREFIX.
    """

    def __init__(self):
        self.service_name = getattr(settings, 'SERVICE_NAME', 'exam-service')
        self.enabled = getattr(settings, 'EVENT_PUBLISHING_ENABLED', True)
        self.backend = getattr(settings, 'EVENT_BACKEND', 'log')

    def publish(
        self,
        event_type: str,
        payload: Dict[str, Any],
        recipient_id: Optional[str] = None,
    ) -> bool:
        """
        Publish an event.

        Returns:
            True if published, False if disabled or the backend failed
        """
        if not self.enabled:
            logger.debug(f"Event publishing disabled, skipping: {event_type}")
            return False

        event = {
            'event_type': event_type,
            'service': self.service_name,
            'timestamp': timezone.now().isoformat(),
            'recipient_id': recipient_id,
            'payload': payload,
        }
        event_json = json.dumps(event, cls=JSONEncoder)

        logger.info(f"Publishing event: {event_type}", extra={
            'event_type': event_type,
            'recipient_id': recipient_id,
        })

        if self.backend == 'redis':
            return self._publish_redis(event_type, event_json)

        logger.debug(f"Event payload: {event_json[:500]}")
        return True

    def _publish_redis(self, event_type: str, event_json: str) -> bool:
        from django_redis import get_redis_connection
        from redis.exceptions import RedisError

        prefix = getattr(settings, 'EVENT_CHANNEL_PREFIX', 'events')
        try:
            get_redis_connection('default').publish(f"{prefix}.{event_type}", event_json)
        except RedisError as e:
            logger.error(f"Redis publish error for {event_type}: {e}")
            return False
        return True

# =============================================================================
# Exam Events
# =============================================================================

def publish_exam_created(exam):
    """Publish exam created event."""
    EventPublisher().publish(
        EventType.EXAM_CREATED,
        payload={
            'exam_id': exam.id,
            'course_id': exam.course_id,
            'title': exam.title,
            'author_role': exam.author_role,
            'created_by': exam.created_by,
            'audience': exam.audience,
            'target_organization_id': exam.target_organization_id,
            'mandated_slot_id': exam.mandated_slot_id,
            'scheduled_date': exam.scheduled_date,
        },
    )


def publish_exam_published(exam):
    """Publish exam published event."""
    EventPublisher().publish(
        EventType.EXAM_PUBLISHED,
        payload={
            'exam_id': exam.id,
            'course_id': exam.course_id,
            'title': exam.title,
            'published_at': exam.published_at,
            'scheduled_date': exam.scheduled_date,
            'deadline': exam.deadline,
        },
    )


def publish_submission_expired(submission, expired_at):
    EventPublisher().publish(
        EventType.SUBMISSION_EXPIRED,
        payload={
            'submission_id': submission.id,
            'exam_id': submission.exam_id,
            'attempt_number': submission.attempt_number,
            'expired_at': expired_at,
        },
        recipient_id=str(submission.student_id),
    )

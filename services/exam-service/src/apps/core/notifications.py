# services/exam-service/src/apps/core/notifications.py
"""
Exam Notifications

Fire-and-forget delivery of exam announcements and results. The core only
talks to the NotificationDispatcher interface; delivery channels live behind
the configured implementation.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, Iterable, List, Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class NotificationKind:
    """Notification kind constants."""
    EXAM_SCHEDULED = 'examScheduled'
    EXAM_RESULT = 'examResult'

    ALL = (EXAM_SCHEDULED, EXAM_RESULT)


@dataclass(frozen=True)
class Recipient:
    id: str
    name: str = ''
    email: str = ''
    phone: str = ''


def _json_safe(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


class NotificationDispatcher:
    """Interface for best-effort notification delivery."""

    def send(self, recipient: Recipient, kind: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError

    def announce_exam(self, exam_id) -> None:
        """Fan examScheduled out to the exam's active students, inline."""
        announce_exam(exam_id, self)


class CeleryNotificationDispatcher(NotificationDispatcher):
    """
    Queues delivery on the Celery worker once the current transaction
    commits. Nothing is queued for rolled-back work.
    """

    def send(self, recipient: Recipient, kind: str, payload: Dict[str, Any]) -> None:
        message = (asdict(recipient), kind, _json_safe(payload))
        transaction.on_commit(lambda: self._enqueue(*message))

    def announce_exam(self, exam_id) -> None:
        """One task per publish; the worker resolves the recipients."""
        exam_id = str(exam_id)
        transaction.on_commit(lambda: self._enqueue_announcement(exam_id))

    @staticmethod
    def _enqueue_announcement(exam_id: str) -> None:
        from .tasks import announce_published_exam

        try:
            announce_published_exam.delay(exam_id)
        except Exception:
            logger.exception(
                f"Failed to queue announcement for exam {exam_id}",
                extra={'exam_id': exam_id, 'kind': NotificationKind.EXAM_SCHEDULED},
            )

    @staticmethod
    def _enqueue(recipient: Dict[str, Any], kind: str, payload: Dict[str, Any]) -> None:
        from .tasks import deliver_notification

        try:
            deliver_notification.delay(recipient, kind, payload)
        except Exception:
            # Broker outages must not surface after the request committed
            logger.exception(
                f"Failed to queue {kind} notification for {recipient['id']}",
                extra={'recipient_id': recipient['id'], 'kind': kind},
            )


class InMemoryNotificationDispatcher(NotificationDispatcher):
    """Records messages in a process-wide outbox. Used by tests."""

    outbox: ClassVar[List[Dict[str, Any]]] = []

    def send(self, recipient: Recipient, kind: str, payload: Dict[str, Any]) -> None:
        self.outbox.append({
            'recipient': recipient,
            'kind': kind,
            'payload': _json_safe(payload),
        })

    @classmethod
    def clear(cls) -> None:
        cls.outbox.clear()

    @classmethod
    def sent(cls, kind: Optional[str] = None) -> List[Dict[str, Any]]:
        return [m for m in cls.outbox if kind is None or m['kind'] == kind]


def get_dispatcher() -> NotificationDispatcher:
    """Instantiate the dispatcher named by EXAM_NOTIFICATION_DISPATCHER."""
    path = getattr(
        settings,
        'EXAM_NOTIFICATION_DISPATCHER',
        'apps.core.notifications.CeleryNotificationDispatcher',
    )
    return import_string(path)()


def notify(
    recipient: Recipient,
    kind: str,
    payload: Dict[str, Any],
    dispatcher: Optional[NotificationDispatcher] = None,
) -> bool:
    """
    Send one notification. Failures are logged and never raised; there is
    no retry.
    """
    try:
        (dispatcher or get_dispatcher()).send(recipient, kind, payload)
    except Exception:
        logger.exception(
            f"Notification {kind} to {recipient.id} failed",
            extra={'recipient_id': recipient.id, 'kind': kind},
        )
        return False
    return True


def notify_exam_scheduled(
    exam: Any,
    recipients: Iterable[Recipient],
    dispatcher: Optional[NotificationDispatcher] = None,
) -> int:
    """Announce a published exam. Returns the number of messages handed off."""
    dispatcher = dispatcher or get_dispatcher()
    payload = {
        'exam_id': exam.id,
        'exam_title': exam.title,
        'course_title': exam.course.title,
        'scheduled_date': exam.scheduled_date,
        'deadline': exam.deadline,
    }
    sent = sum(
        1 for recipient in recipients
        if notify(recipient, NotificationKind.EXAM_SCHEDULED, payload, dispatcher)
    )
    logger.info(
        f"Exam scheduled notifications sent for {exam.id}: {sent}",
        extra={'exam_id': str(exam.id), 'sent': sent},
    )
    return sent


def announce_exam(exam_id, dispatcher: Optional[NotificationDispatcher] = None) -> int:
    """
    Send examScheduled to every actively enrolled student of a published
    exam. Runs on the worker for the Celery dispatcher.
    """
    from .models import Exam
    from .services.stores import EnrollmentStore

    exam = Exam.objects.select_related('course').filter(id=exam_id).first()
    if exam is None or not exam.is_published:
        logger.warning(f"Skipping announcement for missing or unpublished exam {exam_id}")
        return 0
    return notify_exam_scheduled(exam, EnrollmentStore.active_students(exam.course_id), dispatcher)


def schedule_exam_announcement(exam: Any, dispatcher: Optional[NotificationDispatcher] = None) -> bool:
    """Hand the publish fan-out to the dispatcher. Failures are logged, never raised."""
    try:
        (dispatcher or get_dispatcher()).announce_exam(exam.id)
    except Exception:
        logger.exception(
            f"Announcement for exam {exam.id} failed",
            extra={'exam_id': str(exam.id), 'kind': NotificationKind.EXAM_SCHEDULED},
        )
        return False
    return True


def notify_exam_result(
    exam: Any,
    submission: Any,
    recipient: Recipient,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> bool:
    payload = {
        'exam_id': exam.id,
        'exam_title': exam.title,
        'submission_id': submission.id,
        'attempt_number': submission.attempt_number,
        'score': submission.score,
        'total_points': exam.total_points,
        'percentage': submission.percentage,
        'passed': submission.passed,
    }
    return notify(recipient, NotificationKind.EXAM_RESULT, payload, dispatcher)

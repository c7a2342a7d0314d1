# services/exam-service/src/apps/core/tasks.py
"""
Exam Service Celery Tasks

Notification delivery and the in-progress submission expiry sweep.
"""

import logging
from typing import Any, Dict, Tuple

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

from .events import EventPublisher, EventType
from .notifications import NotificationKind, announce_exam

logger = logging.getLogger(__name__)

KIND_EVENTS = {
    NotificationKind.EXAM_SCHEDULED: EventType.EXAM_SCHEDULED,
    NotificationKind.EXAM_RESULT: EventType.EXAM_RESULT,
}


def render_message(kind: str, payload: Dict[str, Any]) -> Tuple[str, str]:
    """Subject and plain-text body for a notification kind."""
    title = payload.get('exam_title', 'Exam')

    if kind == NotificationKind.EXAM_SCHEDULED:
        when = payload.get('scheduled_date') or 'a date to be announced'
        body = f"A new exam \"{title}\" for {payload.get('course_title', 'your course')} is scheduled for {when}."
        if payload.get('deadline'):
            body += f" It must be completed by {payload['deadline']}."
        return f"New exam scheduled: {title}", body

    if kind == NotificationKind.EXAM_RESULT:
        outcome = 'passed' if payload.get('passed') else 'did not pass'
        body = (
            f"You scored {payload.get('score')}/{payload.get('total_points')} "
            f"({payload.get('percentage')}%) on \"{title}\" and {outcome}."
        )
        return f"Exam result: {title}", body

    raise ValueError(f"Unknown notification kind: {kind}")


@shared_task(name='exams.deliver_notification', ignore_result=True)
def deliver_notification(recipient: Dict[str, Any], kind: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deliver one notification over email and the event bus.

    Delivery is at-most-once: failures are logged and never retried.
    """
    subject, body = render_message(kind, payload)
    result = {'recipient': recipient.get('id'), 'kind': kind, 'email': False, 'event': False}

    if recipient.get('email'):
        try:
            send_mail(
                subject=subject,
                message=body,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[recipient['email']],
                fail_silently=False,
            )
            result['email'] = True
        except Exception as e:
            logger.error(f"Failed to email {kind} notification to {recipient.get('id')}: {e}")

    result['event'] = EventPublisher().publish(
        KIND_EVENTS[kind],
        {**payload, 'subject': subject, 'message': body},
        recipient_id=recipient.get('id'),
    )

    logger.info(f"Delivered {kind} notification to {recipient.get('id')}", extra=result)
    return result


@shared_task(name='exams.announce_exam', ignore_result=True)
def announce_published_exam(exam_id: str) -> int:
    """Publish fan-out: one examScheduled notification per active student."""
    sent = announce_exam(exam_id)
    logger.info(f"Announced exam {exam_id} to {sent} students", extra={'exam_id': exam_id, 'sent': sent})
    return sent


@shared_task(name='exams.expire_overdue_submissions')
def expire_overdue_submissions() -> Dict[str, Any]:
    """Mark abandoned in-progress submissions as expired."""
    from .services import SubmissionService

    expired = SubmissionService().expire_overdue()
    logger.info(f"Expiry sweep completed: {expired} submissions expired")
    return {'expired': expired}

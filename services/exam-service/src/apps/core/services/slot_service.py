# services/exam-service/src/apps/core/services/slot_service.py
"""
Slot Authorization

Organizations may only schedule an exam by binding it to a slot the
platform authority reserved on the same course, either by slot id or by a
start time within the tolerance window.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db.models import Q

from ..capabilities import Actor, ActorRole
from ..models import Audience, Exam

logger = logging.getLogger(__name__)

DENY_NO_SLOT = 'no matching authority-mandated slot'
DENY_ROLE = 'actor cannot schedule exams'

DEFAULT_TOLERANCE_SECONDS = 120


@dataclass(frozen=True)
class SlotDecision:
    allowed: bool
    reason: str = ''
    slot: Optional[Exam] = None

    @classmethod
    def allow(cls, slot: Optional[Exam] = None) -> 'SlotDecision':
        return cls(allowed=True, slot=slot)

    @classmethod
    def deny(cls, reason: str) -> 'SlotDecision':
        return cls(allowed=False, reason=reason)


class SlotAuthorizationValidator:
    """Matches organization-created exams against authority slots."""

    def __init__(self, tolerance_seconds: Optional[int] = None):
        if tolerance_seconds is None:
            tolerance_seconds = getattr(settings, 'EXAM_SLOT_TOLERANCE_SECONDS', DEFAULT_TOLERANCE_SECONDS)
        self.tolerance = timedelta(seconds=tolerance_seconds)

    def authorize(
        self,
        actor: Actor,
        course_id,
        proposed_time: Optional[datetime] = None,
        slot_id=None,
    ) -> SlotDecision:
        """
        Decide whether the actor may create an exam on the course.

        Args:
            actor: Caller
            course_id: Course the new exam belongs to
            proposed_time: Scheduled start of the new exam
            slot_id: Explicit authority slot to bind to; takes precedence
                over proposed_time

        Returns:
            SlotDecision carrying the matched slot when allowed
        """
        if actor.is_authority:
            return SlotDecision.allow()

        if not actor.is_organization:
            return SlotDecision.deny(DENY_ROLE)

        if slot_id:
            slot = self._match_by_id(actor, course_id, slot_id)
        elif proposed_time is not None:
            slot = self._match_by_time(course_id, proposed_time)
        else:
            slot = None

        if slot is None:
            self._log_denial(actor, course_id, proposed_time, slot_id)
            return SlotDecision.deny(DENY_NO_SLOT)

        logger.info(
            f"Organization {actor.organization_id} bound to slot {slot.id}",
            extra={'course_id': str(course_id), 'slot_id': str(slot.id)},
        )
        return SlotDecision.allow(slot)

    def authority_slots(self, course_id):
        return Exam.objects.filter(course_id=course_id, author_role=ActorRole.AUTHORITY)

    def _match_by_id(self, actor: Actor, course_id, slot_id) -> Optional[Exam]:
        try:
            slot_uuid = uuid.UUID(str(slot_id))
        except ValueError:
            return None

        return self.authority_slots(course_id).filter(
            Q(audience=Audience.OPEN) | Q(target_organization_id=actor.organization_id),
            id=slot_uuid,
        ).first()

    def _match_by_time(self, course_id, proposed_time: datetime) -> Optional[Exam]:
        candidates = self.authority_slots(course_id).filter(
            scheduled_date__gte=proposed_time - self.tolerance,
            scheduled_date__lte=proposed_time + self.tolerance,
        )
        # Closest slot wins; earliest created breaks exact ties
        return min(
            candidates,
            key=lambda s: (abs(s.scheduled_date - proposed_time), s.created_at),
            default=None,
        )

    def _log_denial(self, actor: Actor, course_id, proposed_time, slot_id) -> None:
        available = [
            {'id': str(s.id), 'scheduled_date': s.scheduled_date.isoformat() if s.scheduled_date else None}
            for s in self.authority_slots(course_id)[:20]
        ]
        logger.warning(
            f"No authority slot matched for organization {actor.organization_id} on course {course_id}",
            extra={
                'proposed_time': proposed_time.isoformat() if proposed_time else None,
                'slot_id': str(slot_id) if slot_id else None,
                'available_slots': available,
            },
        )

# services/exam-service/src/apps/core/services/availability.py
"""
Availability Resolver

Derives the status a student sees for an exam from its timing, the
student's latest submission and the current time.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from django.db import models

from ..models import SubmissionStatus, TERMINAL_GRADED_STATUSES


class AvailabilityStatus(models.TextChoices):
    """Display status for a student."""
    SCHEDULED = 'scheduled', 'Scheduled'
    AVAILABLE = 'available', 'Available'
    IN_PROGRESS = 'in-progress', 'In Progress'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'


@dataclass(frozen=True)
class Availability:
    status: str
    attempts_used: int


def resolve_availability(exam: Any, submission: Optional[Any], now: datetime) -> Availability:
    """Total over every combination of exam timing and submission state."""
    if submission is not None:
        attempts_used = submission.attempt_number or 0

        if submission.status in TERMINAL_GRADED_STATUSES:
            status = AvailabilityStatus.COMPLETED if submission.passed else AvailabilityStatus.FAILED
        elif submission.status == SubmissionStatus.IN_PROGRESS:
            status = AvailabilityStatus.IN_PROGRESS
        else:
            # expired
            status = AvailabilityStatus.FAILED

        return Availability(status=status, attempts_used=attempts_used)

    if exam.scheduled_date is not None and now < exam.scheduled_date:
        status = AvailabilityStatus.SCHEDULED
    elif exam.deadline is not None and now > exam.deadline:
        status = AvailabilityStatus.FAILED
    else:
        status = AvailabilityStatus.AVAILABLE

    return Availability(status=status, attempts_used=0)

# services/exam-service/src/apps/core/capabilities.py
"""
Actor Capabilities

Closed set of actor roles and the single capability check used by the
service layer and the API permission classes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from django.db import models


class ActorRole(models.TextChoices):
    """Capability tags carried in the caller's token."""
    AUTHORITY = 'admin', 'Platform Authority'
    ORGANIZATION = 'university', 'Subordinate Organization'
    STUDENT = 'student', 'Student'


# Highest capability wins when a token carries several roles
ROLE_PRECEDENCE = (ActorRole.AUTHORITY, ActorRole.ORGANIZATION, ActorRole.STUDENT)


class ExamAction(str, Enum):
    """Operations gated by can_perform."""
    LIST = 'list'
    VIEW = 'view'
    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'
    TAKE = 'take'


@dataclass(frozen=True)
class Actor:
    """Verified caller identity."""

    id: str
    role: Optional[str]
    organization_id: Optional[str] = None
    name: str = ''
    email: str = ''

    @classmethod
    def from_user(cls, user: Any) -> 'Actor':
        roles = list(getattr(user, 'roles', None) or [])
        role = next((r.value for r in ROLE_PRECEDENCE if r.value in roles), None)
        user_id = str(user.id)

        organization_id = getattr(user, 'organization_id', None)
        if role == ActorRole.ORGANIZATION and not organization_id:
            # An organization account is its own organization
            organization_id = user_id

        return cls(
            id=user_id,
            role=role,
            organization_id=str(organization_id) if organization_id else None,
            name=getattr(user, 'name', '') or '',
            email=getattr(user, 'email', '') or '',
        )

    @property
    def is_authority(self) -> bool:
        return self.role == ActorRole.AUTHORITY

    @property
    def is_organization(self) -> bool:
        return self.role == ActorRole.ORGANIZATION

    @property
    def is_student(self) -> bool:
        return self.role == ActorRole.STUDENT


def is_owner(actor: Actor, exam: Any) -> bool:
    return exam is not None and str(exam.created_by) == actor.id


def can_perform(actor: Optional[Actor], action: ExamAction, exam: Any = None) -> bool:
    """
    Decide whether an actor may perform an action.

    For UPDATE and DELETE the exam must be supplied to check ownership;
    without it only the role gate is evaluated.
    """
    if actor is None or actor.role is None:
        return False

    if action == ExamAction.VIEW:
        return True

    if action in (ExamAction.LIST, ExamAction.CREATE):
        return actor.is_authority or actor.is_organization

    if action in (ExamAction.UPDATE, ExamAction.DELETE):
        if actor.is_authority:
            return True
        if not actor.is_organization:
            return False
        return exam is None or is_owner(actor, exam)

    if action == ExamAction.TAKE:
        return actor.is_student

    return False

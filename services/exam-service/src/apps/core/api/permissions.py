# services/exam-service/src/apps/core/api/permissions.py
"""
Exam API Permissions
"""

from rest_framework.request import Request
from rest_framework.views import APIView

from shared.common.permissions import BasePermission

from ..capabilities import Actor, ExamAction, can_perform


VIEW_ACTIONS = {
    'list': ExamAction.LIST,
    'create': ExamAction.CREATE,
    'retrieve': ExamAction.VIEW,
    'course_exams': ExamAction.VIEW,
    'update': ExamAction.UPDATE,
    'partial_update': ExamAction.UPDATE,
    'destroy': ExamAction.DELETE,
    'my_exams': ExamAction.TAKE,
    'start': ExamAction.TAKE,
    'submit': ExamAction.TAKE,
    'results': ExamAction.TAKE,
}


def get_actor(request: Request) -> Actor:
    """Actor for the authenticated caller, cached on the request."""
    actor = getattr(request, '_exam_actor', None)
    if actor is None:
        actor = Actor.from_user(request.user)
        request._exam_actor = actor
    return actor


class ExamPermission(BasePermission):
    """Maps viewset actions onto the exam capability check."""

    message = 'You do not have permission to perform this action on exams.'

    def has_permission(self, request: Request, view: APIView) -> bool:
        if not self.is_authenticated(request):
            return False
        action = VIEW_ACTIONS.get(getattr(view, 'action', None))
        if action is None:
            return False
        return can_perform(get_actor(request), action)

    def has_object_permission(self, request: Request, view: APIView, obj) -> bool:
        action = VIEW_ACTIONS.get(getattr(view, 'action', None))
        return action is not None and can_perform(get_actor(request), action, obj)

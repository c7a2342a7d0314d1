# shared/common/permissions.py
"""
Base class for service permission checks.
"""

from rest_framework import permissions


class BasePermission(permissions.BasePermission):

    def is_authenticated(self, request) -> bool:
        user = getattr(request, 'user', None)
        return bool(user is not None and getattr(user, 'is_authenticated', False))

"""
Custom permission classes for orders app.

Role gates only; whether a lounge owner owns the order's lounge is
checked by the services, which need the order row anyway.
"""
from rest_framework.permissions import BasePermission

from apps.accounts.models import Role


class IsLoungeOrAdmin(BasePermission):
    """
    Allow lounge owners and admins.

    Usage:
        def get_permissions(self):
            if self.action in ['update_status', 'verify_qr']:
                return [IsAuthenticated(), IsLoungeOrAdmin()]
            return super().get_permissions()
    """

    message = 'Only lounge owners or admins can perform this action.'

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user and user.is_authenticated and
            user.role in (Role.LOUNGE, Role.ADMIN)
        )

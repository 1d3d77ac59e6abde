"""
DRF permissions for the Wallet app.
"""

from rest_framework.permissions import BasePermission

from .roles import is_admin


class IsStoreAdmin(BasePermission):
    """
    Allow access only to users holding the `admin` role.

    The role comes from the server-side role table, never from the request.
    """

    message = 'Admin role required'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and is_admin(request.user))

"""
Staff permissions - billing operations are performed by dormitory staff
"""
from rest_framework import permissions


class IsDormitoryStaff(permissions.BasePermission):
    """
    Permission to only allow staff users to operate on dormitory data.
    """

    def has_permission(self, request, view):
        """Check if user is authenticated staff"""
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return user.is_staff or user.is_superuser

"""Role based permission classes shared by the marketplace apps."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore


def is_platform_admin(user) -> bool:
    return bool(
        user
        and user.is_authenticated
        and hasattr(user, "is_platform_admin")
        and user.is_platform_admin()
    )


class IsPlatformAdmin(permissions.BasePermission):
    """Only platform admins (role=admin or Django staff)."""

    def has_permission(self, request, view) -> bool:  # type: ignore
        return is_platform_admin(request.user)


class IsVenueOwnerOrReadOnly(permissions.BasePermission):
    """Anyone may read; only venue owners and admins may write."""

    def has_permission(self, request, view) -> bool:  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        user = request.user
        if not user.is_authenticated:
            return False
        return user.is_venue_owner() or user.is_platform_admin()


class IsVendorOrReadOnly(permissions.BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        user = request.user
        if not user.is_authenticated:
            return False
        return user.is_vendor() or user.is_platform_admin()


class IsOwnerOrAdmin(permissions.BasePermission):
    """
    Object-level permission for listings: the owning user or an admin.

    Works for objects exposing ``owner_id`` (venues) or ``user_id``
    (vendor profiles) or reaching the venue through ``venue``.
    """

    def has_object_permission(self, request, view, obj) -> bool:  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        user = request.user
        if not user.is_authenticated:
            return False
        if user.is_platform_admin():
            return True
        if hasattr(obj, "owner_id"):
            return obj.owner_id == user.id
        if hasattr(obj, "user_id"):
            return obj.user_id == user.id
        if hasattr(obj, "venue"):
            return obj.venue.owner_id == user.id
        if hasattr(obj, "vendor"):
            return obj.vendor.user_id == user.id
        return False

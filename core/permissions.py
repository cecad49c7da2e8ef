"""
Role permissions for the three principal scopes.
"""
from rest_framework.exceptions import NotAuthenticated
from rest_framework.permissions import SAFE_METHODS, AllowAny, BasePermission

from .authentication import CUSTOMER, STORE_ADMIN, COURIER


class HasRole(BasePermission):
    role = None
    message = 'Access Denied'

    def has_permission(self, request, view):
        principal = request.user
        if principal is None or not getattr(principal, 'is_authenticated', False):
            raise NotAuthenticated('Authentication required')
        return principal.role == self.role


class IsCustomer(HasRole):
    role = CUSTOMER


class IsStoreAdmin(HasRole):
    role = STORE_ADMIN


class IsStoreOwner(IsStoreAdmin):
    """Store admin who has already created a store."""

    def has_permission(self, request, view):
        return super().has_permission(request, view) and request.user.store_id is not None


class IsCourier(HasRole):
    role = COURIER


class OpenReadsMixin:
    """
    View mixin: safe methods are public, writes need ``write_permission_classes``.
    """
    write_permission_classes = []

    def get_permissions(self):
        if self.request.method in SAFE_METHODS:
            return [AllowAny()]
        return [permission() for permission in self.write_permission_classes]

# backend/inventory/permissions.py
from rest_framework import permissions
from users.models import CustomUser # Impor model user kustom

class IsAdminUser(permissions.BasePermission):
    """Hanya mengizinkan akses untuk user dengan role ADMIN atau superuser."""
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and (request.user.role == CustomUser.Role.ADMIN or request.user.is_superuser))

class IsAdminOrReadOnly(permissions.BasePermission):
    """Read-only untuk semua user terautentikasi, write hanya untuk Admin."""
    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return request.user.is_admin

class IsOwnerOfRequest(permissions.BasePermission):
    """Peminta hanya bisa melihat request miliknya sendiri; Admin bisa melihat semua."""
    def has_object_permission(self, request, view, obj):
        if request.user.is_admin:
             return True
        return obj.requester_id == request.user.pk

from rest_framework.permissions import BasePermission


def is_store_admin(user):
    if not user or not user.is_authenticated:
        return False
    return user.is_superuser or getattr(user, 'role', None) == 'admin'


class IsStoreAdmin(BasePermission):
    """Only users with role `admin` (or superusers) may access the back office."""

    message = 'Acesso restrito a administradores.'

    def has_permission(self, request, view):
        return is_store_admin(request.user)

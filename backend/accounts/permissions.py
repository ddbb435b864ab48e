from rest_framework.permissions import BasePermission


class _RolePermission(BasePermission):
    role_flag = None

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return bool(getattr(user, self.role_flag, False))


class IsCustomer(_RolePermission):
    """Allows access only to users with role == 'customer'."""
    role_flag = "is_customer"


class IsProvider(_RolePermission):
    """Allows access only to users with role == 'provider'."""
    role_flag = "is_provider"

"""
Role based permission classes.
"""
from rest_framework.permissions import SAFE_METHODS, BasePermission

ADMIN_ROLES = {"admin"}
DESK_ROLES = {"admin", "opd-ipd"}
CLINICAL_ROLES = {"admin", "opd-ipd", "staff"}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsAdminRole(BasePermission):
    """Dashboard, reports and master data."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in ADMIN_ROLES


class IsDeskRole(BasePermission):
    """Registration, admission and billing desk (admins included)."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in DESK_ROLES


class IsClinicalRole(BasePermission):
    """Anyone filling clinical sheets."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in CLINICAL_ROLES


class IsAdminOrReadOnly(BasePermission):
    """Clinical roles read, admins write (master data)."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return _role(request) in CLINICAL_ROLES
        return _role(request) in ADMIN_ROLES


class IsDeskOrReadOnly(BasePermission):
    """Clinical roles read, the desk writes (admissions, discharge, OT)."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return _role(request) in CLINICAL_ROLES
        return _role(request) in DESK_ROLES

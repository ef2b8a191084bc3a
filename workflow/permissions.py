"""
Role based access control for the workflow API.
"""
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

ADMIN_ROLES = {"admin", "super_admin"}
INTAKE_ROLES = ADMIN_ROLES | {"reception"}
DEPARTMENT_ROLES = ADMIN_ROLES | {"department_user"}
STAFF_ROLES = ADMIN_ROLES | {"reception", "department_user"}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


def is_admin(user) -> bool:
    return getattr(user, "role", None) in ADMIN_ROLES


class IsAdminRole(BasePermission):
    """Allow access only to admin and super admin accounts."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in ADMIN_ROLES



class IsIntakeRole(BasePermission):
    """Reception desk or admin: patient registration and payments."""
    def has_permission(self, request, view) -> bool:
        return _role(request) in INTAKE_ROLES


class IsDepartmentRole(BasePermission):
    """Department user or admin: cases, uploads and report status."""
    def has_permission(self, request, view) -> bool:
        return _role(request) in DEPARTMENT_ROLES


class IsStaff(BasePermission):
    """Any hospital staff role."""
    def has_permission(self, request, view) -> bool:
        return _role(request) in STAFF_ROLES


class IsPortalRole(BasePermission):
    """Patients signed in to the mobile portal."""
    def has_permission(self, request, view) -> bool:
        return _role(request) == "patient"



def ensure_department_scope(user, department_id) -> None:
    """Raise ``PermissionDenied`` when a department user reaches outside their department."""
    if getattr(user, "role", None) != "department_user":
        return
    if not user.department_id or int(department_id or 0) != user.department_id:
        raise PermissionDenied("Not your department")

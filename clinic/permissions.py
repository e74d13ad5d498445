"""
Role based permission classes.

Each class admits authenticated users whose ``role`` is in ``roles``.
Object level ownership (a patient reading their own appointment, a
doctor touching their own prescription) is checked in the services.
"""
from rest_framework.permissions import BasePermission

from .models import User

AUTHORITY_ROLES = {r for r, _ in User.ROLE_CHOICES} - {User.ROLE_PATIENT}
MANAGEMENT_ROLES = {User.ROLE_MANAGER, User.ROLE_ADMIN}


class _RolePermission(BasePermission):
    roles: set[str] = set()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) in self.roles)


class IsPatientRole(_RolePermission):
    """Only patients."""
    roles = {User.ROLE_PATIENT}


class IsAuthorityRole(_RolePermission):
    """Any staff role."""
    roles = AUTHORITY_ROLES


class IsDoctorRole(_RolePermission):
    roles = {User.ROLE_DOCTOR}


class IsPharmacistRole(_RolePermission):
    roles = {User.ROLE_PHARMACIST}


class IsHealthCareManager(_RolePermission):
    roles = {User.ROLE_MANAGER}


class IsManagementRole(_RolePermission):
    """healthCareManager or systemAdmin."""
    roles = MANAGEMENT_ROLES


class IsPharmacyStaff(_RolePermission):
    """Pharmacists plus management; may change the medicine inventory."""
    roles = MANAGEMENT_ROLES | {User.ROLE_PHARMACIST}

"""
Role-based permission classes for the API.

Each class runs the access gate for the request and maps its decision
onto DRF errors: no caller is 401, a missing or incomplete profile and
a role outside the allowed set are 403. ``write_roles`` narrows the
allowed set for unsafe methods.
"""
from __future__ import annotations

from typing import FrozenSet, Optional

from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework.permissions import BasePermission, SAFE_METHODS

from clinic.access import ALL_ROLES, CARE_TEAM, CLINICIANS, Decision, evaluate
from clinic.models import Role


class ProfileGate(BasePermission):
    allowed_roles: Optional[FrozenSet[Role]] = ALL_ROLES
    write_roles: Optional[FrozenSet[Role]] = None

    def roles_for(self, request) -> Optional[FrozenSet[Role]]:
        if request.method not in SAFE_METHODS and self.write_roles is not None:
            return self.write_roles
        return self.allowed_roles

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        caller = getattr(request, 'user', None)
        profile = caller.profile if caller else None
        roles = self.roles_for(request)
        decision = evaluate(request.path, caller, profile, roles)
        if decision is Decision.PROCEED:
            request.profile = profile
            return True
        if decision is Decision.REDIRECT_SIGN_IN:
            raise NotAuthenticated()
        if decision is Decision.REDIRECT_COMPLETE_PROFILE:
            raise PermissionDenied('Complete your profile to continue')
        allowed = ', '.join(sorted(r.value for r in roles or ()))
        raise PermissionDenied(f"Access restricted to: {allowed}. Your role: {profile.role if profile else None}")


class IsOnboarded(ProfileGate):
    """Any active, complete profile."""


class IsDoctor(ProfileGate):
    allowed_roles = frozenset({Role.DOCTOR})


class IsAdminRole(ProfileGate):
    allowed_roles = frozenset({Role.ADMIN})


class IsCareTeam(ProfileGate):
    """Everyone except patients."""
    allowed_roles = CARE_TEAM


class ClinicianWrites(ProfileGate):
    """Reads for any onboarded profile; writes for doctors, nurses and admins."""
    write_roles = CLINICIANS


class CareTeamWrites(ProfileGate):
    write_roles = CARE_TEAM


class DoctorWrites(ProfileGate):
    write_roles = frozenset({Role.DOCTOR})


class CareTeamReads(ProfileGate):
    """Writes for any onboarded profile; reads for everyone except patients."""

    def roles_for(self, request) -> Optional[FrozenSet[Role]]:
        if request.method in SAFE_METHODS:
            return CARE_TEAM
        return self.allowed_roles


class ClinicianDeletes(ProfileGate):
    """Any onboarded profile, except DELETE which is for doctors, nurses and admins."""

    def roles_for(self, request) -> Optional[FrozenSet[Role]]:
        if request.method == 'DELETE':
            return CLINICIANS
        return self.allowed_roles


class IsAuthenticatedCaller(BasePermission):
    """A verified session token, profile or not. Used by onboarding endpoints."""

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if getattr(request, 'user', None) is None:
            raise NotAuthenticated()
        return True

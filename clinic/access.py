"""
Access gate.

:func:`evaluate` decides, for one request, whether the caller may
proceed, must sign in, must finish onboarding, or is denied. It reads
nothing and writes nothing itself; callers pass the caller identity and
the freshly loaded profile. The same decision is presented three ways:

* :class:`clinic.middleware.AccessGateMiddleware` redirects page requests;
* :func:`role_required` wraps page views and can render an inline
  restricted-access notice instead of redirecting;
* :mod:`clinic.permissions` turns it into 401/403 API responses.
"""
from __future__ import annotations

import enum
import logging
from functools import wraps
from typing import FrozenSet, Iterable, Optional
from urllib.parse import urlencode

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.http import JsonResponse
from django.shortcuts import redirect
from rest_framework_simplejwt.exceptions import TokenBackendError

from clinic.authentication import resolve_caller
from clinic.models import Role, UserProfile

logger = logging.getLogger(__name__)


class Decision(enum.Enum):
    PROCEED = 'proceed'
    REDIRECT_SIGN_IN = 'redirect_sign_in'
    REDIRECT_COMPLETE_PROFILE = 'redirect_complete_profile'
    DENY = 'deny'


WEBHOOK_ROUTE = '/api/webhooks/identity'
AUTH_CALLBACK_ROUTE = '/auth/callback'
UNAUTHORIZED_ROUTE = '/unauthorized'
PROFILE_COMPLETION_ROUTES = ('/complete-profile', '/api/users/create-profile')

PUBLIC_ROUTES = (
    '/sign-in',
    '/sign-up',
    WEBHOOK_ROUTE,
    AUTH_CALLBACK_ROUTE,
    *PROFILE_COMPLETION_ROUTES,
)
ONBOARDING_EXEMPT_ROUTES = (
    WEBHOOK_ROUTE,
    AUTH_CALLBACK_ROUTE,
    *PROFILE_COMPLETION_ROUTES,
)

ALL_ROLES: FrozenSet[Role] = frozenset(Role)
CLINICIANS: FrozenSet[Role] = frozenset({Role.DOCTOR, Role.NURSE, Role.ADMIN})
CARE_TEAM: FrozenSet[Role] = ALL_ROLES - {Role.PATIENT}
PATIENT_SIDE: FrozenSet[Role] = frozenset({Role.PATIENT, Role.CARETAKER})

DASHBOARDS = {
    Role.PATIENT: '/patient/dashboard',
    Role.DOCTOR: '/doctor/dashboard',
    Role.ADMIN: '/admin/dashboard',
    Role.CARETAKER: '/caretaker/dashboard',
    Role.LAB_REPORTER: '/lab-reporter/dashboard',
    Role.NURSE: '/nurse/dashboard',
}
_unmapped = ALL_ROLES - set(DASHBOARDS)
if _unmapped:
    raise ImproperlyConfigured(f"No dashboard for roles: {sorted(r.value for r in _unmapped)}")

# Role-owned page sections; the portal prefix of each dashboard belongs to its role.
ROUTE_RULES = tuple(
    (path.rsplit('/', 1)[0], frozenset({role})) for role, path in DASHBOARDS.items()
)


def _matches(path: str, route: str) -> bool:
    return path == route or path.startswith(route.rstrip('/') + '/')


def is_public(path: str) -> bool:
    return any(_matches(path, r) for r in PUBLIC_ROUTES)


def is_onboarding_exempt(path: str) -> bool:
    return any(_matches(path, r) for r in ONBOARDING_EXEMPT_ROUTES)


def roles_for_path(path: str) -> Optional[FrozenSet[Role]]:
    """Roles allowed on ``path`` by the route table, or None when the path has no rule."""
    for prefix, roles in ROUTE_RULES:
        if _matches(path, prefix):
            return roles
    return None


def dashboard_for(role: Role) -> str:
    return DASHBOARDS[Role(role)]


def evaluate(path: str, caller, profile: Optional[UserProfile],
             allowed_roles: Optional[Iterable[Role]] = None) -> Decision:
    """Decide what happens to one request.

    ``allowed_roles`` of None falls back to the route table; a path with
    no rule is open to every onboarded role.
    """
    if caller is None:
        return Decision.PROCEED if is_public(path) else Decision.REDIRECT_SIGN_IN
    if is_onboarding_exempt(path) or _matches(path, UNAUTHORIZED_ROUTE):
        return Decision.PROCEED
    if profile is None or not profile.is_complete:
        return Decision.REDIRECT_COMPLETE_PROFILE
    if not profile.is_active:
        return Decision.DENY
    roles = frozenset(allowed_roles) if allowed_roles is not None else roles_for_path(path)
    if roles is not None and profile.role_enum not in roles:
        return Decision.DENY
    return Decision.PROCEED


def sign_in_redirect(request):
    return redirect(f"{settings.SIGN_IN_URL}?{urlencode({'redirect_url': request.get_full_path()})}")


def restricted_notice(roles: Optional[Iterable[Role]], profile: Optional[UserProfile]):
    allowed = sorted(Role(r).value for r in roles) if roles is not None else []
    role = profile.role if profile else None
    return JsonResponse({
        'success': False,
        'restricted': True,
        'message': f"Access restricted to: {', '.join(allowed)}. Your role: {role}",
        'allowedRoles': allowed,
        'role': role,
    }, status=403)


def present(decision: Decision, request, *, inline: bool = False,
            roles: Optional[Iterable[Role]] = None, profile: Optional[UserProfile] = None):
    """Page response for a non-PROCEED decision."""
    if decision is Decision.REDIRECT_SIGN_IN:
        return sign_in_redirect(request)
    if decision is Decision.REDIRECT_COMPLETE_PROFILE:
        return redirect(settings.COMPLETE_PROFILE_URL)
    if decision is Decision.DENY:
        if inline:
            return restricted_notice(roles, profile)
        return redirect(settings.UNAUTHORIZED_URL)
    raise ValueError(f"nothing to present for {decision}")


def caller_or_none(request):
    """Caller for a page request; an invalid token counts as signed out."""
    try:
        return resolve_caller(request)
    except TokenBackendError as e:
        logger.info("rejected session token on %s: %s", request.path, e)
        return None


def role_required(*roles: Role, inline: bool = False):
    """Gate a page view on the caller's role.

    With ``inline=True`` a denied caller gets a restricted-access notice
    (allowed roles and the caller's role) instead of a redirect.
    """
    allowed = frozenset(Role(r) for r in roles)

    def decorator(view):
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            caller = caller_or_none(request)
            profile = caller.profile if caller else None
            decision = evaluate(request.path, caller, profile, allowed)
            if decision is not Decision.PROCEED:
                return present(decision, request, inline=inline, roles=allowed, profile=profile)
            request.caller = caller
            request.profile = profile
            return view(request, *args, **kwargs)
        return wrapper
    return decorator

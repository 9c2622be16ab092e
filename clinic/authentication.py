"""
Authentication against identity provider session tokens.

The session token arrives either as an ``Authorization: Bearer`` header
(API clients) or in the provider's ``__session`` cookie (browser pages).
A verified token yields a :class:`CallerIdentity`; the caller's profile
is looked up separately because it may not exist yet.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from django.conf import settings
from rest_framework import authentication
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import TokenBackendError

from clinic.services.idp import decode_session_token
from clinic.services.profiles import get_profile


class CallerIdentity:
    """Authenticated identity provider user, profile or not."""
    is_authenticated = True
    is_anonymous = False

    def __init__(self, external_id: str, claims: Optional[Dict[str, Any]] = None):
        self.external_id = external_id
        self.claims = claims or {'sub': external_id}

    def __repr__(self) -> str:
        return f"CallerIdentity({self.external_id!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, CallerIdentity) and other.external_id == self.external_id

    def __hash__(self) -> int:
        return hash(self.external_id)

    @property
    def pk(self) -> str:
        return self.external_id

    @property
    def profile(self):
        # Read on every access; profile state is never cached on the caller.
        return get_profile(self.external_id)


def get_session_token(request) -> Optional[str]:
    header = request.META.get('HTTP_AUTHORIZATION', '')
    parts = header.split()
    if len(parts) == 2 and parts[0].lower() == 'bearer':
        return parts[1]
    return request.COOKIES.get(settings.IDP_SESSION_COOKIE) or None


def resolve_caller(request) -> Optional[CallerIdentity]:
    """Caller for ``request``, or None when no token is present.

    Raises ``TokenBackendError`` when a token is present but invalid.
    """
    token = get_session_token(request)
    if not token:
        return None
    claims = decode_session_token(token)
    return CallerIdentity(claims['sub'], claims)


class IdentityProviderAuthentication(authentication.BaseAuthentication):
    www_authenticate_realm = 'api'

    def authenticate(self, request):
        try:
            caller = resolve_caller(request)
        except TokenBackendError as e:
            raise AuthenticationFailed('Invalid or expired session token') from e
        if caller is None:
            return None
        return caller, caller.claims

    def authenticate_header(self, request):
        return f'Bearer realm="{self.www_authenticate_realm}"'

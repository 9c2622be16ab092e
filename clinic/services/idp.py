"""
Identity provider client.

Session tokens are verified locally with simplejwt's ``TokenBackend``
(RS256 against the provider JWKS in production, HS256 with a shared
secret for development). User records are read from the provider's
REST API when the token claims do not carry an email address.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

import requests
from django.conf import settings
from rest_framework_simplejwt.backends import TokenBackend
from rest_framework_simplejwt.exceptions import TokenBackendError

logger = logging.getLogger(__name__)


class IdentityProviderError(RuntimeError):
    pass


@dataclass
class Identity:
    external_id: str
    email: Optional[str] = None
    first_name: str = ''
    last_name: str = ''
    photo_url: str = ''

    @property
    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        if full:
            return full
        return (self.email or '').split('@')[0]


@lru_cache(maxsize=4)
def _token_backend(algorithm: str, secret: str, jwks_url: str, issuer: Optional[str], leeway: int) -> TokenBackend:
    if algorithm.startswith('HS'):
        return TokenBackend(algorithm, signing_key=secret, issuer=issuer, leeway=leeway)
    return TokenBackend(algorithm, jwk_url=jwks_url or None, issuer=issuer, leeway=leeway)


def get_token_backend() -> TokenBackend:
    return _token_backend(
        settings.IDP_JWT_ALGORITHM,
        settings.IDP_JWT_SECRET,
        settings.IDP_JWKS_URL,
        settings.IDP_JWT_ISSUER,
        settings.IDP_JWT_LEEWAY,
    )


def decode_session_token(token: str) -> Dict[str, Any]:
    """Verify ``token`` and return its claims. Raises :class:`TokenBackendError`."""
    payload = get_token_backend().decode(token, verify=True)
    if not isinstance(payload.get('sub'), str) or not payload['sub']:
        raise TokenBackendError('Token has no subject')
    return payload


def _primary_email(data: Dict[str, Any]) -> Optional[str]:
    addresses = data.get('email_addresses') or []
    primary_id = data.get('primary_email_address_id')
    for entry in addresses:
        if primary_id and entry.get('id') == primary_id:
            return entry.get('email_address')
    if addresses:
        return addresses[0].get('email_address')
    return None


def identity_from_payload(data: Dict[str, Any]) -> Identity:
    """Build an :class:`Identity` from a provider user object (API or webhook shape)."""
    external_id = data.get('id')
    if not isinstance(external_id, str) or not external_id:
        raise IdentityProviderError('User payload has no id')
    return Identity(
        external_id=external_id,
        email=_primary_email(data),
        first_name=data.get('first_name') or '',
        last_name=data.get('last_name') or '',
        photo_url=data.get('image_url') or data.get('profile_image_url') or '',
    )


def identity_from_claims(claims: Dict[str, Any]) -> Identity:
    return Identity(
        external_id=claims['sub'],
        email=claims.get('email') or None,
        first_name=claims.get('first_name') or claims.get('given_name') or '',
        last_name=claims.get('last_name') or claims.get('family_name') or '',
        photo_url=claims.get('image_url') or claims.get('picture') or '',
    )


def fetch_identity(external_id: str) -> Identity:
    if not settings.IDP_SECRET_KEY:
        raise IdentityProviderError('Identity provider API key not configured')
    url = f"{settings.IDP_API_URL}/users/{external_id}"
    r = requests.get(
        url,
        headers={'Authorization': f"Bearer {settings.IDP_SECRET_KEY}"},
        timeout=settings.IDP_TIMEOUT,
    )
    r.raise_for_status()
    data = r.json()
    if 'errors' in data:
        raise IdentityProviderError(f"Identity provider error: {data['errors']}")
    return identity_from_payload(data)


def resolve_identity(caller) -> Identity:
    """Full identity for an authenticated caller, going to the provider API only if needed."""
    identity = identity_from_claims(caller.claims)
    if identity.email:
        return identity
    logger.debug("token for %s carries no email; fetching user record", identity.external_id)
    try:
        return fetch_identity(identity.external_id)
    except requests.RequestException as e:
        raise IdentityProviderError(f"Identity provider request failed: {e}") from e

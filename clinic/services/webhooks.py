"""
Identity provider webhook verification and dispatch.

Deliveries are signed svix-style: the ``svix-signature`` header holds
space-separated ``v1,<base64 hmac-sha256>`` entries computed over
``"{svix-id}.{svix-timestamp}.{raw body}"`` with the base64 secret that
follows the ``whsec_`` prefix.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, Mapping, Optional

from django.conf import settings

from clinic.exceptions import WebhookVerificationError
from clinic.services.identity import apply_identity_deleted, apply_identity_updated

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ('svix-id', 'svix-timestamp', 'svix-signature')


def _secret_bytes(secret: str) -> bytes:
    if secret.startswith('whsec_'):
        secret = secret[len('whsec_'):]
    try:
        return base64.b64decode(secret)
    except (binascii.Error, ValueError) as e:
        raise WebhookVerificationError('Webhook secret is malformed') from e


def sign(secret: str, msg_id: str, timestamp: str, body: bytes) -> str:
    signed = f"{msg_id}.{timestamp}.".encode() + body
    digest = hmac.new(_secret_bytes(secret), signed, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_webhook(headers: Mapping[str, Optional[str]], body: bytes, *, now: Optional[float] = None) -> Dict[str, Any]:
    """Check the signature headers against ``body`` and return the decoded event.

    Raises :class:`WebhookVerificationError` on missing headers, a stale
    timestamp, a signature mismatch or a body that is not a JSON object.
    """
    msg_id, timestamp, signature_header = (headers.get(h) for h in SIGNATURE_HEADERS)
    if not (msg_id and timestamp and signature_header):
        raise WebhookVerificationError('Error occurred -- no svix headers')

    secret = settings.IDP_WEBHOOK_SECRET
    if not secret:
        logger.error("IDP_WEBHOOK_SECRET is not configured; rejecting webhook %s", msg_id)
        raise WebhookVerificationError('Webhook secret not configured')

    try:
        ts = int(timestamp)
    except ValueError as e:
        raise WebhookVerificationError('Invalid signature timestamp') from e
    now = time.time() if now is None else now
    if abs(now - ts) > settings.IDP_WEBHOOK_TOLERANCE:
        raise WebhookVerificationError('Signature timestamp outside tolerance')

    expected = sign(secret, msg_id, timestamp, body)
    candidates = [part.split(',', 1)[1] for part in signature_header.split() if part.startswith('v1,')]
    if not any(hmac.compare_digest(expected, c) for c in candidates):
        raise WebhookVerificationError('Invalid webhook signature')

    try:
        event = json.loads(body)
    except (UnicodeDecodeError, ValueError) as e:
        raise WebhookVerificationError('Webhook body is not valid JSON') from e
    if not isinstance(event, dict):
        raise WebhookVerificationError('Webhook body must be a JSON object')
    return event


def dispatch_event(event: Dict[str, Any]) -> str:
    """Apply a verified event. Returns the outcome for the delivery log."""
    event_type = event.get('type')
    data = event.get('data') or {}
    if not isinstance(data, dict):
        raise WebhookVerificationError('Webhook data must be an object')
    if event_type == 'user.updated':
        return 'updated' if apply_identity_updated(data) else 'ignored'
    if event_type == 'user.deleted':
        return 'deleted' if apply_identity_deleted(data) else 'ignored'
    # user.created and anything else: profiles come from the sign-in callback and onboarding
    logger.debug("webhook event %s acknowledged without action", event_type)
    return 'ignored'

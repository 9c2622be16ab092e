"""
Identity synchronisation.

Keeps local :class:`UserProfile` rows consistent with the identity
provider: a bare profile on first sign-in, the onboarding submission,
and the provider's update/delete webhooks. Each operation commits
immediately. The unique constraints on ``external_id`` and ``email``
are the only guard against concurrent creates; the losing writer gets a
:class:`PersistenceError`.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.models import DEFAULT_ROLE, Role, UserProfile
from clinic.serializers.profiles import ProfileCompletionSerializer
from clinic.services.audit import log_action
from clinic.services.common import persisting
from clinic.services.idp import Identity, identity_from_payload

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> Optional[str]:
    email = (email or '').strip().lower()
    return email or None


def find_profile(identity: Identity) -> Optional[UserProfile]:
    """Profile bound to the identity id, else the one holding its email."""
    profile = UserProfile.objects.filter(external_id=identity.external_id).first()
    if profile is None and normalize_email(identity.email):
        profile = UserProfile.objects.filter(email=normalize_email(identity.email)).first()
    return profile


def email_taken(email: Optional[str], profile: UserProfile) -> bool:
    """True when another profile already holds ``email``."""
    return bool(email) and UserProfile.objects.filter(email=email).exclude(pk=profile.pk).exists()


def on_first_authentication(identity: Identity) -> Tuple[UserProfile, bool]:
    """Create a bare profile for a new identity, or stamp ``last_login`` on the existing one.

    A profile that only matches by email and is bound to a different
    identity id is returned untouched; re-binding it is left to profile
    completion.
    """
    now = timezone.now()
    with persisting('recording first authentication'), transaction.atomic():
        profile = find_profile(identity)
        if profile is not None:
            if profile.external_id == identity.external_id:
                profile.last_login = now
                profile.save(update_fields=['last_login', 'updated_at'])
            else:
                logger.info("identity %s shares an email with profile %s bound to %s",
                            identity.external_id, profile.pk, profile.external_id)
            return profile, False
        profile = UserProfile.objects.create(
            external_id=identity.external_id,
            email=normalize_email(identity.email),
            name=identity.display_name,
            first_name=identity.first_name,
            last_name=identity.last_name,
            photo_url=identity.photo_url,
            role=DEFAULT_ROLE,
            is_active=True,
            last_login=now,
        )
    logger.info("created default profile %s for %s", profile.pk, identity.external_id)
    log_action(actor_id=identity.external_id, action='profile_created', object_type='user',
               object_id=profile.pk, detail={'via': 'first_authentication', 'role': profile.role})
    return profile, True


def complete_profile(identity: Identity, data: Any) -> Tuple[UserProfile, bool]:
    """Apply an onboarding submission. Returns ``(profile, created)``.

    Raises ``ValidationError`` before touching the database when any of
    phone, role, dateOfBirth or gender is missing or malformed, and
    before any write when the identity's email already belongs to a
    profile other than the one being completed.
    """
    s = ProfileCompletionSerializer(data=data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    role = vd['role']
    email = normalize_email(identity.email)
    if settings.ADMIN_EMAIL and email == settings.ADMIN_EMAIL:
        role = Role.ADMIN

    submitted = {
        'phone': vd['phone'],
        'role': role,
        'date_of_birth': vd['dateOfBirth'],
        'gender': vd['gender'],
        'is_active': True,
        'last_login': timezone.now(),
    }
    with persisting('completing profile'), transaction.atomic():
        profile = find_profile(identity)
        created = profile is None
        if created:
            profile = UserProfile.objects.create(
                external_id=identity.external_id,
                email=email,
                name=identity.display_name,
                first_name=identity.first_name,
                last_name=identity.last_name,
                photo_url=identity.photo_url,
                **submitted,
            )
        else:
            if email_taken(email, profile):
                raise ValidationError({'email': ['This email address is already linked to another profile']})
            profile.external_id = identity.external_id
            if email:
                profile.email = email
            if identity.display_name:
                profile.name = identity.display_name
            profile.first_name = identity.first_name or profile.first_name
            profile.last_name = identity.last_name or profile.last_name
            profile.photo_url = identity.photo_url or profile.photo_url
            for field, value in submitted.items():
                setattr(profile, field, value)
            profile.save()
    log_action(actor_id=identity.external_id, action='profile_completed', object_type='user',
               object_id=profile.pk, detail={'created': created, 'role': profile.role})
    return profile, created


def apply_identity_updated(data: Dict[str, Any]) -> Optional[UserProfile]:
    """Mirror a provider ``user.updated`` event. No-op when no profile is bound to the id."""
    identity = identity_from_payload(data)
    with persisting('applying identity update'), transaction.atomic():
        profile = UserProfile.objects.filter(external_id=identity.external_id).first()
        if profile is None:
            logger.info("user.updated for unknown identity %s ignored", identity.external_id)
            return None
        email = normalize_email(identity.email)
        if email_taken(email, profile):
            logger.warning("user.updated for %s carries %s, already held by another profile; email kept",
                           identity.external_id, email)
        elif email:
            profile.email = email
        profile.name = identity.display_name or profile.name
        profile.first_name = identity.first_name
        profile.last_name = identity.last_name
        profile.photo_url = identity.photo_url
        profile.last_login = timezone.now()
        profile.save()
    log_action(actor_id=identity.external_id, action='profile_synced', object_type='user', object_id=profile.pk)
    return profile


def apply_identity_deleted(data: Dict[str, Any]) -> int:
    """Mirror a provider ``user.deleted`` event. Returns the number of profiles removed."""
    external_id = data.get('id') if isinstance(data, dict) else None
    if not isinstance(external_id, str) or not external_id:
        logger.info("user.deleted without an id ignored")
        return 0
    with persisting('applying identity delete'):
        deleted, _ = UserProfile.objects.filter(external_id=external_id).delete()
    if deleted:
        log_action(actor_id=external_id, action='profile_deleted', object_type='user', object_id=external_id)
    else:
        logger.info("user.deleted for unknown identity %s ignored", external_id)
    return deleted

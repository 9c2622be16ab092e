"""
Profile store lookups.

Every call reads the table directly; there is no cache, so a lookup
always reflects the most recently committed write. A missing profile is
a normal outcome (the caller has not been onboarded yet) and is returned
as ``None`` rather than raised.
"""
from __future__ import annotations

from typing import Optional

from django.db.models import QuerySet

from clinic.models import Role, UserProfile


def get_profile(external_id: Optional[str]) -> Optional[UserProfile]:
    if not external_id:
        return None
    return UserProfile.objects.filter(external_id=external_id).first()


def get_role(external_id: Optional[str]) -> Optional[Role]:
    if not external_id:
        return None
    value = UserProfile.objects.filter(external_id=external_id).values_list('role', flat=True).first()
    return Role(value) if value else None


def has_role(external_id: Optional[str], role: Role) -> bool:
    return get_role(external_id) == role


def parse_role(value) -> Optional[Role]:
    try:
        return Role(value)
    except ValueError:
        return None


def list_by_role(role: Role) -> QuerySet:
    return UserProfile.objects.filter(role=role, is_active=True).order_by('name', 'id')


def list_doctors() -> QuerySet:
    return list_by_role(Role.DOCTOR)

"""
Profile endpoints: onboarding submission, the caller's own profile and
directory listings by role.
"""
from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.models import Role, UserProfile
from clinic.permissions import IsAuthenticatedCaller, IsCareTeam, IsOnboarded
from clinic.services.identity import complete_profile
from clinic.services.idp import IdentityProviderError, resolve_identity
from clinic.services.profiles import list_by_role, list_doctors, parse_role

logger = logging.getLogger(__name__)


def _iso(value):
    return value.isoformat() if value else None


def serialize_profile(p: UserProfile) -> dict:
    return {
        'id': p.id,
        'externalId': p.external_id,
        'email': p.email,
        'name': p.name,
        'firstName': p.first_name,
        'lastName': p.last_name,
        'phone': p.phone,
        'role': p.role,
        'dateOfBirth': _iso(p.date_of_birth),
        'gender': p.gender or None,
        'photoUrl': p.photo_url,
        'isActive': p.is_active,
        'isComplete': p.is_complete,
        'lastLogin': _iso(p.last_login),
        'createdAt': _iso(p.created_at),
        'updatedAt': _iso(p.updated_at),
    }


def identity_unavailable(e: Exception) -> Response:
    logger.warning("identity lookup failed: %s", e)
    return Response({'success': False, 'message': 'Identity provider unavailable'},
                    status=status.HTTP_502_BAD_GATEWAY)


@api_view(['POST'])
@permission_classes([IsAuthenticatedCaller])
def create_profile(request):
    """Submit onboarding fields. 201 when a profile is created, 200 when one is updated."""
    try:
        identity = resolve_identity(request.user)
    except IdentityProviderError as e:
        return identity_unavailable(e)
    profile, created = complete_profile(identity, request.data)
    return Response(
        {
            'success': True,
            'message': 'Profile created successfully' if created else 'Profile updated successfully',
            'data': serialize_profile(profile),
        },
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(['GET'])
@permission_classes([IsAuthenticatedCaller])
def me(request):
    profile = request.user.profile
    return Response({
        'success': True,
        'data': serialize_profile(profile) if profile else None,
        'missingFields': profile.missing_fields if profile else ['phone', 'role', 'dateOfBirth', 'gender'],
    })


@api_view(['GET'])
@permission_classes([IsOnboarded])
def doctors(request):
    data = [serialize_profile(p) for p in list_doctors()]
    return Response({'success': True, 'count': len(data), 'data': data})


@api_view(['GET'])
@permission_classes([IsCareTeam])
def users_by_role(request, role: str):
    parsed = parse_role(role)
    if parsed is None:
        return Response(
            {'success': False, 'message': f"Invalid role. Must be one of: {', '.join(r.value for r in Role)}"},
            status=status.HTTP_400_BAD_REQUEST,
        )
    data = [serialize_profile(p) for p in list_by_role(parsed)]
    return Response({'success': True, 'count': len(data), 'data': data})

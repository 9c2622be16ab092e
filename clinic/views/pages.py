"""
Page endpoints behind the access gate.

The web front end renders these; the backend only decides where a
caller belongs and hands back the JSON context for the page.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.http import JsonResponse
from django.shortcuts import redirect
from django.utils import timezone

from clinic.access import caller_or_none, dashboard_for, role_required, sign_in_redirect
from clinic.models import Appointment, LiveSession, Notification, PhysicalVital, Prescription, Role, UserProfile
from clinic.services.identity import on_first_authentication
from clinic.services.idp import IdentityProviderError, resolve_identity
from clinic.views.users import serialize_profile

logger = logging.getLogger(__name__)


def auth_callback(request):
    """Landing point after sign-in: make sure a profile exists, then route the caller."""
    caller = caller_or_none(request)
    if caller is None:
        return sign_in_redirect(request)
    try:
        identity = resolve_identity(caller)
    except IdentityProviderError as e:
        logger.warning("auth callback for %s could not resolve identity: %s", caller.external_id, e)
        return JsonResponse({'success': False, 'message': 'Identity provider unavailable'}, status=502)
    profile, _ = on_first_authentication(identity)
    if profile.external_id != identity.external_id or not profile.is_complete:
        return redirect(settings.COMPLETE_PROFILE_URL)
    if not profile.is_active:
        return redirect(settings.UNAUTHORIZED_URL)
    return redirect(dashboard_for(profile.role_enum))


def complete_profile_page(request):
    caller = caller_or_none(request)
    if caller is None:
        return sign_in_redirect(request)
    profile = caller.profile
    missing = profile.missing_fields if profile else ['phone', 'role', 'dateOfBirth', 'gender']
    return JsonResponse({
        'success': True,
        'data': {
            'profileExists': profile is not None,
            'missingFields': missing,
            'submitTo': '/api/users/create-profile',
        },
    })


def unauthorized(request):
    return JsonResponse({'success': False, 'message': 'You do not have access to this page'}, status=403)


def _counts(role: Role, external_id: str) -> dict:
    now = timezone.now()
    if role == Role.PATIENT:
        return {
            'upcomingAppointments': Appointment.objects.filter(patient_id=external_id, start_time__gte=now)
            .exclude(status__in=[Appointment.STATUS_CANCELLED, Appointment.STATUS_REJECTED]).count(),
            'activePrescriptions': Prescription.objects.filter(patient_id=external_id, is_active=True).count(),
            'unreadNotifications': Notification.objects.filter(recipient_id=external_id, is_read=False).count(),
        }
    if role == Role.DOCTOR:
        return {
            'pendingRequests': Appointment.objects.filter(
                doctor_id=external_id, status=Appointment.STATUS_REQUESTED).count(),
            'todayAppointments': Appointment.objects.filter(
                doctor_id=external_id, start_time__date=timezone.localdate()).count(),
            'liveSessions': LiveSession.objects.filter(doctor_id=external_id).count(),
        }
    if role == Role.ADMIN:
        return {r.value: UserProfile.objects.filter(role=r, is_active=True).count() for r in Role}
    if role == Role.NURSE:
        return {'vitalsRecordedToday': PhysicalVital.objects.filter(
            recorded_by=external_id, recorded_at__date=timezone.localdate()).count()}
    return {'unreadNotifications': Notification.objects.filter(recipient_id=external_id, is_read=False).count()}


def _dashboard_view(role: Role):
    @role_required(role)
    def view(request):
        profile = request.profile
        return JsonResponse({
            'success': True,
            'data': {
                'dashboard': role.value,
                'profile': serialize_profile(profile),
                'summary': _counts(role, profile.external_id),
            },
        })
    view.__name__ = f"{role.value}_dashboard"
    return view


DASHBOARD_VIEWS = {role: _dashboard_view(role) for role in Role}


@role_required(Role.DOCTOR, Role.ADMIN, inline=True)
def analytics(request):
    by_status = {s: Appointment.objects.filter(status=s).count() for s, _ in Appointment.STATUS_CHOICES}
    return JsonResponse({
        'success': True,
        'data': {
            'appointmentsByStatus': by_status,
            'liveSessions': LiveSession.objects.count(),
            'activePrescriptions': Prescription.objects.filter(is_active=True).count(),
            'patients': UserProfile.objects.filter(role=Role.PATIENT, is_active=True).count(),
        },
    })

from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.models import Appointment
from clinic.permissions import CareTeamWrites, ClinicianWrites, IsCareTeam, IsOnboarded
from clinic.serializers.appointments import (
    AppointmentApproveSerializer,
    AppointmentListQuerySerializer,
    AppointmentRejectSerializer,
    AppointmentRequestSerializer,
    AppointmentSerializer,
    AppointmentStatsQuerySerializer,
    AvailabilityQuerySerializer,
    ReminderSerializer,
)
from clinic.services import appointments as svc


def _iso(value):
    return value.isoformat() if value else None


def _serialize(a: Appointment) -> dict:
    return {
        'id': a.id,
        'patient_id': a.patient_id,
        'doctor_id': a.doctor_id,
        'status': a.status,
        'appointment_type': a.appointment_type,
        'scheduled_date': _iso(a.scheduled_date),
        'start_time': _iso(a.start_time),
        'end_time': _iso(a.end_time),
        'duration_minutes': a.duration_minutes,
        'preferred_dates': a.preferred_dates,
        'preferred_times': a.preferred_times,
        'reason': a.reason,
        'location': a.location,
        'notes': a.notes,
        'approved_at': _iso(a.approved_at),
        'rejected_at': _iso(a.rejected_at),
        'rejection_reason': a.rejection_reason,
        'is_recurring': a.is_recurring,
        'recurrence_pattern': a.recurrence_pattern,
        'recurrence_end_date': _iso(a.recurrence_end_date),
        'reminder_sent_24h': a.reminder_sent_24h,
        'reminder_sent_1h': a.reminder_sent_1h,
        'reminder_sent_at': _iso(a.reminder_sent_at),
        'is_upcoming': a.is_upcoming,
        'is_past': a.is_past,
        'created_at': _iso(a.created_at),
        'updated_at': _iso(a.updated_at),
    }


def _list_response(items) -> Response:
    data = [_serialize(a) for a in items]
    return Response({'success': True, 'count': len(data), 'data': data})


@api_view(['GET', 'POST'])
@permission_classes([CareTeamWrites])
def appointments(request):
    if request.method == 'GET':
        q = AppointmentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = dict(q.validated_data)
        items, pagination = svc.list_appointments(sort_by=vd.pop('sortBy'), **vd)
        return Response({'success': True, 'count': len(items), 'pagination': pagination,
                         'data': [_serialize(a) for a in items]})
    s = AppointmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = svc.create_appointment(s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Appointment created successfully', 'data': _serialize(appt)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([ClinicianWrites])
def appointment_detail(request, pk: int):
    appt = svc.get_appointment(pk)
    if request.method == 'GET':
        return Response({'success': True, 'data': _serialize(appt)})
    if request.method == 'DELETE':
        svc.delete_appointment(appt, actor_id=request.user.external_id)
        return Response({'success': True, 'message': 'Appointment deleted successfully', 'data': {}})
    s = AppointmentSerializer(appt, data=request.data, partial=request.method == 'PATCH')
    s.is_valid(raise_exception=True)
    appt = svc.update_appointment(appt, s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Appointment updated successfully', 'data': _serialize(appt)})


@api_view(['POST'])
@permission_classes([IsOnboarded])
def request_appointment(request):
    s = AppointmentRequestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = svc.request_appointment(s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Appointment request submitted', 'data': _serialize(appt)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsOnboarded])
def requested_for_doctor(request, doctor_id: str):
    return _list_response(svc.requested_for_doctor(doctor_id))


@api_view(['PATCH', 'POST'])
@permission_classes([ClinicianWrites])
def approve_appointment(request, pk: int):
    appt = svc.get_appointment(pk)
    s = AppointmentApproveSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = svc.approve(appt, s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Appointment approved', 'data': _serialize(appt)})


@api_view(['PATCH', 'POST'])
@permission_classes([ClinicianWrites])
def reject_appointment(request, pk: int):
    appt = svc.get_appointment(pk)
    s = AppointmentRejectSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = svc.reject(appt, s.validated_data['rejection_reason'], actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Appointment rejected', 'data': _serialize(appt)})


def _transition_view(new_status: str, message: str, permission):
    @api_view(['PATCH', 'POST'])
    @permission_classes([permission])
    def view(request, pk: int):
        appt = svc.transition(svc.get_appointment(pk), new_status, actor_id=request.user.external_id)
        return Response({'success': True, 'message': message, 'data': _serialize(appt)})
    return view


cancel_appointment = _transition_view(Appointment.STATUS_CANCELLED, 'Appointment cancelled successfully', IsOnboarded)
confirm_appointment = _transition_view(Appointment.STATUS_CONFIRMED, 'Appointment confirmed successfully', ClinicianWrites)
complete_appointment = _transition_view(Appointment.STATUS_COMPLETED, 'Appointment marked as completed', ClinicianWrites)


@api_view(['GET'])
@permission_classes([IsOnboarded])
def appointments_for_patient(request, patient_id: str):
    return _list_response(svc.for_patient(patient_id))


@api_view(['GET'])
@permission_classes([IsOnboarded])
def appointments_for_doctor(request, doctor_id: str):
    return _list_response(svc.for_doctor(doctor_id))


@api_view(['GET'])
@permission_classes([IsOnboarded])
def doctor_availability(request, doctor_id: str):
    q = AvailabilityQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'success': True, 'data': svc.doctor_availability(doctor_id, q.validated_data['date'])})


@api_view(['GET'])
@permission_classes([IsOnboarded])
def appointment_stats(request):
    q = AppointmentStatsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'success': True, 'data': svc.stats_overview(**q.validated_data)})


@api_view(['GET'])
@permission_classes([IsCareTeam])
def pending_reminders(request):
    pending = svc.pending_reminders()
    return Response({'success': True, 'data': {
        f"reminders_{kind}": [_serialize(a) for a in items] for kind, items in pending.items()
    }})


@api_view(['PATCH'])
@permission_classes([IsCareTeam])
def mark_reminder_sent(request, pk: int):
    appt = svc.get_appointment(pk)
    s = ReminderSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    kind = s.validated_data['reminder_type']
    appt = svc.mark_reminder_sent(appt, kind, actor_id=request.user.external_id)
    return Response({'success': True, 'message': f"{kind} reminder marked as sent", 'data': _serialize(appt)})

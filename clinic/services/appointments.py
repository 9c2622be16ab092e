"""
Appointment records and their request/approval lifecycle.

A patient files a request with preferred dates; the doctor approves it
with a concrete slot or rejects it with a reason. Approved or scheduled
appointments can then be confirmed, completed or cancelled.
"""
from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple

from django.db.models import Avg, Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.models import Appointment
from clinic.services.audit import log_action
from clinic.services.common import paginate, persisting

A = Appointment

# status -> states it may be entered from
TRANSITIONS = {
    A.STATUS_APPROVED: {A.STATUS_REQUESTED},
    A.STATUS_REJECTED: {A.STATUS_REQUESTED},
    A.STATUS_CONFIRMED: {A.STATUS_APPROVED, A.STATUS_SCHEDULED, A.STATUS_RESCHEDULED},
    A.STATUS_COMPLETED: {A.STATUS_APPROVED, A.STATUS_SCHEDULED, A.STATUS_CONFIRMED, A.STATUS_RESCHEDULED},
    A.STATUS_CANCELLED: {A.STATUS_REQUESTED, A.STATUS_APPROVED, A.STATUS_SCHEDULED,
                         A.STATUS_CONFIRMED, A.STATUS_RESCHEDULED},
}


def get_appointment(pk: int) -> Appointment:
    return get_object_or_404(Appointment, pk=pk)


def list_appointments(*, patient_id=None, doctor_id=None, status=None, appointment_type=None,
                      start_date=None, end_date=None, sort_by='created_at', order='desc',
                      page=1, limit=10) -> Tuple[List[Appointment], dict]:
    qs = Appointment.objects.all()
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if status:
        qs = qs.filter(status=status)
    if appointment_type:
        qs = qs.filter(appointment_type=appointment_type)
    if start_date:
        qs = qs.filter(start_time__date__gte=start_date)
    if end_date:
        qs = qs.filter(start_time__date__lte=end_date)
    prefix = '-' if order == 'desc' else ''
    qs = qs.order_by(f"{prefix}{sort_by}", f"{prefix}id")
    with persisting('listing appointments'):
        return paginate(qs, page, limit)


def create_appointment(data: Dict[str, Any], *, actor_id: Optional[str]) -> Appointment:
    with persisting('creating appointment'):
        appt = Appointment.objects.create(**data)
    log_action(actor_id=actor_id, action='appointment_created', object_type='appointment',
               object_id=appt.pk, detail={'status': appt.status})
    return appt


def update_appointment(appt: Appointment, data: Dict[str, Any], *, actor_id: Optional[str]) -> Appointment:
    for field, value in data.items():
        setattr(appt, field, value)
    with persisting('updating appointment'):
        appt.save()
    log_action(actor_id=actor_id, action='appointment_updated', object_type='appointment',
               object_id=appt.pk, detail={'fields': sorted(data)})
    return appt


def delete_appointment(appt: Appointment, *, actor_id: Optional[str]) -> None:
    pk = appt.pk
    with persisting('deleting appointment'):
        appt.delete()
    log_action(actor_id=actor_id, action='appointment_deleted', object_type='appointment', object_id=pk)


def request_appointment(data: Dict[str, Any], *, actor_id: Optional[str]) -> Appointment:
    return create_appointment({**data, 'status': A.STATUS_REQUESTED}, actor_id=actor_id)


def requested_for_doctor(doctor_id: str) -> List[Appointment]:
    qs = Appointment.objects.filter(doctor_id=doctor_id, status=A.STATUS_REQUESTED).order_by('created_at', 'id')
    with persisting('listing requested appointments'):
        return list(qs)


def for_patient(patient_id: str) -> List[Appointment]:
    with persisting('listing patient appointments'):
        return list(Appointment.objects.filter(patient_id=patient_id).order_by('-created_at', '-id'))


def for_doctor(doctor_id: str) -> List[Appointment]:
    with persisting('listing doctor appointments'):
        return list(Appointment.objects.filter(doctor_id=doctor_id).order_by('-created_at', '-id'))


def transition(appt: Appointment, new_status: str, *, actor_id: Optional[str], **fields) -> Appointment:
    allowed_from = TRANSITIONS[new_status]
    if appt.status not in allowed_from:
        raise ValidationError(f"Cannot change appointment from {appt.status} to {new_status}")
    previous = appt.status
    appt.status = new_status
    for field, value in fields.items():
        setattr(appt, field, value)
    with persisting(f"marking appointment {new_status}"):
        appt.save()
    log_action(actor_id=actor_id, action=f"appointment_{new_status}", object_type='appointment',
               object_id=appt.pk, detail={'from': previous})
    return appt


def approve(appt: Appointment, slot: Dict[str, Any], *, actor_id: Optional[str]) -> Appointment:
    return transition(appt, A.STATUS_APPROVED, actor_id=actor_id, approved_at=timezone.now(), **slot)


def reject(appt: Appointment, reason: str, *, actor_id: Optional[str]) -> Appointment:
    return transition(appt, A.STATUS_REJECTED, actor_id=actor_id,
                      rejected_at=timezone.now(), rejection_reason=reason)


def doctor_availability(doctor_id: str, day) -> Dict[str, Any]:
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(day, time.min), tz)
    end = start + timedelta(days=1)
    qs = (Appointment.objects
          .filter(doctor_id=doctor_id, start_time__gte=start, start_time__lt=end)
          .exclude(status__in=[A.STATUS_CANCELLED, A.STATUS_NO_SHOW, A.STATUS_REJECTED])
          .order_by('start_time'))
    with persisting('checking doctor availability'):
        busy = [
            {'start': a.start_time.isoformat(),
             'end': (a.end_time or a.start_time + timedelta(minutes=a.duration_minutes or 30)).isoformat()}
            for a in qs
        ]
    return {'date': day.isoformat(), 'doctor_id': doctor_id, 'busySlots': busy, 'totalAppointments': len(busy)}


# status field -> overview key
STATUS_KEYS = {
    A.STATUS_REQUESTED: 'requested',
    A.STATUS_APPROVED: 'approved',
    A.STATUS_REJECTED: 'rejected',
    A.STATUS_SCHEDULED: 'scheduled',
    A.STATUS_CONFIRMED: 'confirmed',
    A.STATUS_COMPLETED: 'completed',
    A.STATUS_CANCELLED: 'cancelled',
    A.STATUS_NO_SHOW: 'noShow',
    A.STATUS_RESCHEDULED: 'rescheduled',
}


def stats_overview(*, patient_id=None, doctor_id=None, start_date=None, end_date=None) -> Dict[str, Any]:
    qs = Appointment.objects.all()
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if start_date:
        qs = qs.filter(start_time__date__gte=start_date)
    if end_date:
        qs = qs.filter(start_time__date__lte=end_date)
    counts = {key: Count('id', filter=Q(status=status)) for status, key in STATUS_KEYS.items()}
    with persisting('aggregating appointments'):
        overview = qs.aggregate(totalAppointments=Count('id'), avgDuration=Avg('duration_minutes'), **counts)
        by_type = list(qs.values('appointment_type').annotate(count=Count('id')).order_by('-count', 'appointment_type'))
    overview['avgDuration'] = round(overview['avgDuration'] or 0, 2)
    return {
        'overview': overview,
        'typeDistribution': [{'type': t['appointment_type'], 'count': t['count']} for t in by_type],
    }


# reminder type -> (flag field, lead time)
REMINDERS = {
    '24h': ('reminder_sent_24h', timedelta(hours=24)),
    '1h': ('reminder_sent_1h', timedelta(hours=1)),
}
REMINDER_STATUSES = (A.STATUS_APPROVED, A.STATUS_SCHEDULED, A.STATUS_CONFIRMED)


def pending_reminders() -> Dict[str, List[Appointment]]:
    """Upcoming appointments whose 24-hour or 1-hour reminder has not gone out."""
    now = timezone.now()
    pending = {}
    with persisting('listing pending reminders'):
        for kind, (flag, lead) in REMINDERS.items():
            qs = Appointment.objects.filter(
                start_time__gte=now, start_time__lte=now + lead,
                status__in=REMINDER_STATUSES, **{flag: False},
            ).order_by('start_time', 'id')
            pending[kind] = list(qs)
    return pending


def mark_reminder_sent(appt: Appointment, kind: str, *, actor_id: Optional[str]) -> Appointment:
    flag, _ = REMINDERS[kind]
    setattr(appt, flag, True)
    appt.reminder_sent_at = timezone.now()
    with persisting('marking reminder sent'):
        appt.save(update_fields=[flag, 'reminder_sent_at', 'updated_at'])
    log_action(actor_id=actor_id, action='appointment_reminder_sent', object_type='appointment',
               object_id=appt.pk, detail={'reminder': kind})
    return appt

"""
Patient intake records.

A record is addressed either by its numeric id or by the identity id of
the patient it belongs to. History lists (allergies, chronic conditions,
past surgeries) grow one entry at a time; an entry already present,
compared case-insensitively, is not added twice.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from django.db import transaction
from django.db.models import Count, Q
from rest_framework.exceptions import NotFound

from clinic.models import Appointment, PatientRecord, PhysicalVital, Prescription
from clinic.services.audit import log_action
from clinic.services.common import paginate, persisting
from clinic.services.documents import visible as visible_documents

logger = logging.getLogger(__name__)


def get_record(ref: str) -> PatientRecord:
    """Record by numeric id, else by the owning patient's identity id."""
    qs = PatientRecord.objects.all()
    record = None
    if str(ref).isdigit():
        record = qs.filter(pk=int(ref)).first()
    if record is None:
        record = qs.filter(patient_id=ref).first()
    if record is None:
        raise NotFound('Patient record not found')
    return record


def list_records(*, search=None, is_active=None, sort_by='created_at', order='desc',
                 page=1, limit=10) -> Tuple[List[PatientRecord], dict]:
    qs = PatientRecord.objects.all()
    if is_active is not None:
        qs = qs.filter(is_active=is_active)
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(emergency_contact_phone__icontains=search))
    prefix = '-' if order == 'desc' else ''
    qs = qs.order_by(f"{prefix}{sort_by}", f"{prefix}id")
    with persisting('listing patient records'):
        return paginate(qs, page, limit)


def create_record(data: Dict[str, Any], *, actor_id: Optional[str]) -> PatientRecord:
    with persisting('creating patient record'):
        record = PatientRecord.objects.create(**data)
    log_action(actor_id=actor_id, action='patient_created', object_type='patient',
               object_id=record.pk, detail={'patientId': record.patient_id})
    return record


def update_record(record: PatientRecord, data: Dict[str, Any], *, actor_id: Optional[str],
                  action: str = 'patient_updated') -> PatientRecord:
    for field, value in data.items():
        setattr(record, field, value)
    with persisting('updating patient record'):
        record.save()
    log_action(actor_id=actor_id, action=action, object_type='patient',
               object_id=record.pk, detail={'fields': sorted(data)})
    return record


def delete_record(record: PatientRecord, *, actor_id: Optional[str]) -> None:
    pk = record.pk
    with persisting('deleting patient record'):
        record.delete()
    log_action(actor_id=actor_id, action='patient_deleted', object_type='patient', object_id=pk)


def add_history_entry(record: PatientRecord, field: str, entry: str, *, actor_id: Optional[str]) -> PatientRecord:
    if field not in PatientRecord.HISTORY_FIELDS:
        raise ValueError(f"{field} is not a history list")
    with persisting(f"adding to {field}"), transaction.atomic():
        record = PatientRecord.objects.select_for_update().get(pk=record.pk)
        entries = list(getattr(record, field) or [])
        if entry.casefold() in {e.casefold() for e in entries}:
            logger.info("patient %s already lists %r in %s", record.pk, entry, field)
            return record
        entries.append(entry)
        setattr(record, field, entries)
        record.save(update_fields=[field, 'updated_at'])
    log_action(actor_id=actor_id, action=f"patient_{field}_added", object_type='patient', object_id=record.pk)
    return record


def set_family_history(record: PatientRecord, text: str, *, actor_id: Optional[str]) -> PatientRecord:
    record.family_history = text
    with persisting('updating family history'):
        record.save(update_fields=['family_history', 'updated_at'])
    log_action(actor_id=actor_id, action='patient_family_history_updated', object_type='patient', object_id=record.pk)
    return record


def for_doctor(doctor_id: str, limit: int = 100) -> List[PatientRecord]:
    qs = PatientRecord.objects.filter(primary_doctor_id=doctor_id, is_active=True).order_by('-created_at', '-id')
    with persisting('listing patients for doctor'):
        return list(qs[:limit])


def stats_overview() -> Dict[str, Any]:
    with persisting('aggregating patient records'):
        total = PatientRecord.objects.count()
        active = PatientRecord.objects.filter(is_active=True).count()
        by_blood_group = list(
            PatientRecord.objects.exclude(blood_group='')
            .values('blood_group').annotate(count=Count('id')).order_by('-count', 'blood_group')
        )
        recent = list(PatientRecord.objects.order_by('-created_at', '-id')[:5])
    return {
        'totalPatients': total,
        'activePatients': active,
        'inactivePatients': total - active,
        'bloodGroupStats': by_blood_group,
        'recentPatients': recent,
    }


def comprehensive(record: PatientRecord) -> Dict[str, Any]:
    """The record with the patient's recent vitals, documents, prescriptions and appointments."""
    ident = record.patient_id or str(record.pk)
    with persisting('reading comprehensive patient data'):
        vitals = list(PhysicalVital.objects.filter(patient_id=ident).order_by('-recorded_at', '-id')[:10])
        documents = list(visible_documents().filter(patient_id=ident, is_active=True)
                         .order_by('-uploaded_at', '-id')[:20])
        prescriptions = list(Prescription.objects.filter(patient_id=ident).order_by('-created_at', '-id')[:10])
        appointments = list(Appointment.objects.filter(patient_id=ident).order_by('-created_at', '-id')[:10])
    return {
        'patient': record,
        'vitals': vitals,
        'documents': documents,
        'prescriptions': prescriptions,
        'appointments': appointments,
        'statistics': {
            'totalVitals': len(vitals),
            'totalDocuments': len(documents),
            'totalPrescriptions': len(prescriptions),
            'totalAppointments': len(appointments),
            'latestVitals': vitals[0] if vitals else None,
        },
    }

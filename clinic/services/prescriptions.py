from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from django.db.models import Avg, Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.models import Prescription
from clinic.services.audit import log_action
from clinic.services.common import paginate, persisting


def get_prescription(pk: int) -> Prescription:
    return get_object_or_404(Prescription, pk=pk)


def list_prescriptions(*, patient_id=None, doctor_id=None, is_active=None,
                       order='desc', page=1, limit=10) -> Tuple[List[Prescription], dict]:
    qs = Prescription.objects.all()
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if is_active is not None:
        qs = qs.filter(is_active=is_active)
    qs = qs.order_by('created_at', 'id') if order == 'asc' else qs.order_by('-created_at', '-id')
    with persisting('listing prescriptions'):
        return paginate(qs, page, limit)


def active_for_patient(patient_id: str) -> List[Prescription]:
    with persisting('listing active prescriptions'):
        return list(Prescription.objects.filter(patient_id=patient_id, is_active=True).order_by('-created_at', '-id'))


def create_prescription(data: Dict[str, Any], *, actor_id: Optional[str]) -> Prescription:
    with persisting('creating prescription'):
        p = Prescription.objects.create(**data)
    log_action(actor_id=actor_id, action='prescription_created', object_type='prescription',
               object_id=p.pk, detail={'patientId': p.patient_id})
    return p


def update_prescription(p: Prescription, data: Dict[str, Any], *, actor_id: Optional[str]) -> Prescription:
    for field, value in data.items():
        setattr(p, field, value)
    with persisting('updating prescription'):
        p.save()
    log_action(actor_id=actor_id, action='prescription_updated', object_type='prescription', object_id=p.pk)
    return p


def complete_prescription(p: Prescription, *, actor_id: Optional[str]) -> Prescription:
    if p.completed_at is not None:
        raise ValidationError('Prescription is already completed')
    p.is_active = False
    p.completed_at = timezone.now()
    with persisting('completing prescription'):
        p.save(update_fields=['is_active', 'completed_at'])
    log_action(actor_id=actor_id, action='prescription_completed', object_type='prescription', object_id=p.pk)
    return p


def stats_overview(*, patient_id=None, doctor_id=None) -> Dict[str, Any]:
    qs = Prescription.objects.all()
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    with persisting('aggregating prescriptions'):
        overview = qs.aggregate(
            totalPrescriptions=Count('id'),
            activePrescriptions=Count('id', filter=Q(is_active=True)),
            completedPrescriptions=Count('id', filter=Q(is_active=False)),
            avgDuration=Avg('duration_days'),
        )
        top = list(qs.values('medication_name').annotate(count=Count('id'))
                   .order_by('-count', 'medication_name')[:5])
    overview['avgDuration'] = round(overview['avgDuration'] or 0, 2)
    return {
        'overview': overview,
        'topMedications': [{'medication': m['medication_name'], 'prescriptionCount': m['count']} for m in top],
    }

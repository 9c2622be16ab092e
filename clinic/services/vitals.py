from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from django.db.models import Avg, Count, Max
from django.shortcuts import get_object_or_404
from django.utils import timezone

from clinic.models import PhysicalVital
from clinic.services.audit import log_action
from clinic.services.common import paginate, persisting

STAT_FIELDS = {
    'avgSystolicBP': 'systolic_bp',
    'avgDiastolicBP': 'diastolic_bp',
    'avgHeartRate': 'heart_rate',
    'avgBloodSugar': 'blood_sugar',
    'avgTemperature': 'temperature',
    'avgSpO2': 'spo2',
    'avgWeight': 'weight',
    'avgBMI': 'bmi',
}


def get_vital(pk: int) -> PhysicalVital:
    return get_object_or_404(PhysicalVital, pk=pk)


def list_vitals(*, patient_id=None, recorded_by=None, measurement_method=None,
                start_date=None, end_date=None, order='desc', page=1, limit=10) -> Tuple[List[PhysicalVital], dict]:
    qs = PhysicalVital.objects.all()
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if recorded_by:
        qs = qs.filter(recorded_by=recorded_by)
    if measurement_method:
        qs = qs.filter(measurement_method=measurement_method)
    if start_date:
        qs = qs.filter(recorded_at__date__gte=start_date)
    if end_date:
        qs = qs.filter(recorded_at__date__lte=end_date)
    qs = qs.order_by('recorded_at', 'id') if order == 'asc' else qs.order_by('-recorded_at', '-id')
    with persisting('listing vitals'):
        return paginate(qs, page, limit)


def create_vital(data: Dict[str, Any], *, actor_id: Optional[str]) -> PhysicalVital:
    data = dict(data)
    if not data.get('recorded_by') and actor_id:
        data['recorded_by'] = actor_id
    with persisting('recording vitals'):
        vital = PhysicalVital.objects.create(**data)
    log_action(actor_id=actor_id, action='vitals_recorded', object_type='physical_vital',
               object_id=vital.pk, detail={'patientId': vital.patient_id})
    return vital


def update_vital(vital: PhysicalVital, data: Dict[str, Any], *, actor_id: Optional[str]) -> PhysicalVital:
    for field, value in data.items():
        setattr(vital, field, value)
    with persisting('updating vitals'):
        vital.save()
    log_action(actor_id=actor_id, action='vitals_updated', object_type='physical_vital', object_id=vital.pk)
    return vital


def delete_vital(vital: PhysicalVital, *, actor_id: Optional[str]) -> None:
    pk = vital.pk
    with persisting('deleting vitals'):
        vital.delete()
    log_action(actor_id=actor_id, action='vitals_deleted', object_type='physical_vital', object_id=pk)


def latest_for_patient(patient_id: str) -> Optional[PhysicalVital]:
    with persisting('reading latest vitals'):
        return PhysicalVital.objects.filter(patient_id=patient_id).order_by('-recorded_at', '-id').first()


def stats_for_patient(patient_id: str, days: int = 30) -> Dict[str, Any]:
    since = timezone.now() - timedelta(days=days)
    qs = PhysicalVital.objects.filter(patient_id=patient_id, recorded_at__gte=since)
    aggregates = {name: Avg(field) for name, field in STAT_FIELDS.items()}
    with persisting('aggregating vitals'):
        stats = qs.aggregate(totalRecords=Count('id'), latestRecording=Max('recorded_at'), **aggregates)
        recent = list(qs.order_by('-recorded_at', '-id')[:10])
    for name in STAT_FIELDS:
        if stats[name] is not None:
            stats[name] = round(stats[name], 2)
    if stats['latestRecording'] is not None:
        stats['latestRecording'] = stats['latestRecording'].isoformat()
    return {'period': f"Last {days} days", 'statistics': stats, 'recentReadings': recent}

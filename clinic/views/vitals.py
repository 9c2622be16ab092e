from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from clinic.models import PhysicalVital
from clinic.permissions import ClinicianWrites, IsOnboarded
from clinic.serializers.vitals import MEASUREMENTS, VitalListQuerySerializer, VitalSerializer, VitalStatsQuerySerializer
from clinic.services import vitals as svc


def _serialize(v: PhysicalVital) -> dict:
    data = {
        'id': v.id,
        'patient_id': v.patient_id,
        'recorded_by': v.recorded_by,
        'recorded_at': v.recorded_at.isoformat() if v.recorded_at else None,
        'measurement_method': v.measurement_method,
        'notes': v.notes,
        'bp_status': v.bp_status,
        'temp_status': v.temp_status,
        'created_at': v.created_at.isoformat() if v.created_at else None,
        'updated_at': v.updated_at.isoformat() if v.updated_at else None,
    }
    data.update({m: getattr(v, m) for m in MEASUREMENTS})
    return data


@api_view(['GET', 'POST'])
@permission_classes([IsOnboarded])
def vitals(request):
    if request.method == 'GET':
        q = VitalListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        items, pagination = svc.list_vitals(**q.validated_data)
        return Response({'success': True, 'count': len(items), 'pagination': pagination,
                         'data': [_serialize(v) for v in items]})
    s = VitalSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vital = svc.create_vital(s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Vital record created successfully', 'data': _serialize(vital)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([ClinicianWrites])
def vital_detail(request, pk: int):
    vital = svc.get_vital(pk)
    if request.method == 'GET':
        return Response({'success': True, 'data': _serialize(vital)})
    if request.method == 'DELETE':
        svc.delete_vital(vital, actor_id=request.user.external_id)
        return Response({'success': True, 'message': 'Vital record deleted successfully', 'data': {}})
    s = VitalSerializer(vital, data=request.data, partial=request.method == 'PATCH')
    s.is_valid(raise_exception=True)
    vital = svc.update_vital(vital, s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Vital record updated successfully', 'data': _serialize(vital)})


@api_view(['GET'])
@permission_classes([IsOnboarded])
def vitals_for_patient(request, patient_id: str):
    items, pagination = svc.list_vitals(patient_id=patient_id, page=1, limit=200)
    return Response({'success': True, 'count': len(items), 'pagination': pagination,
                     'data': [_serialize(v) for v in items]})


@api_view(['GET'])
@permission_classes([IsOnboarded])
def latest_vitals(request, patient_id: str):
    vital = svc.latest_for_patient(patient_id)
    if vital is None:
        raise NotFound('No vital records found for this patient')
    return Response({'success': True, 'data': _serialize(vital)})


@api_view(['GET'])
@permission_classes([IsOnboarded])
def vitals_stats(request, patient_id: str):
    q = VitalStatsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    stats = svc.stats_for_patient(patient_id, q.validated_data['days'])
    stats['recentReadings'] = [_serialize(v) for v in stats['recentReadings']]
    return Response({'success': True, 'data': stats})

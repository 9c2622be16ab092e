from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.models import Prescription
from clinic.permissions import DoctorWrites, IsOnboarded
from clinic.serializers.prescriptions import (
    PrescriptionListQuerySerializer,
    PrescriptionSerializer,
    PrescriptionStatsQuerySerializer,
)
from clinic.services import prescriptions as svc


def _serialize(p: Prescription) -> dict:
    expiry = p.expiry_date
    return {
        'id': p.id,
        'patient_id': p.patient_id,
        'doctor_id': p.doctor_id,
        'medication_name': p.medication_name,
        'dosage': p.dosage,
        'frequency': p.frequency,
        'duration_days': p.duration_days,
        'instructions': p.instructions,
        'qr_code_url': p.qr_code_url,
        'is_active': p.is_active,
        'created_at': p.created_at.isoformat() if p.created_at else None,
        'completed_at': p.completed_at.isoformat() if p.completed_at else None,
        'expiry_date': expiry.isoformat() if expiry else None,
        'is_expired': p.is_expired,
        'days_remaining': p.days_remaining,
    }


def _list_response(items, pagination=None) -> Response:
    body = {'success': True, 'count': len(items), 'data': [_serialize(p) for p in items]}
    if pagination is not None:
        body['pagination'] = pagination
    return Response(body)


@api_view(['GET', 'POST'])
@permission_classes([DoctorWrites])
def prescriptions(request):
    if request.method == 'GET':
        q = PrescriptionListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        return _list_response(*svc.list_prescriptions(**q.validated_data))
    s = PrescriptionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    p = svc.create_prescription(s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Prescription created successfully', 'data': _serialize(p)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([DoctorWrites])
def prescription_detail(request, pk: int):
    p = svc.get_prescription(pk)
    if request.method == 'GET':
        return Response({'success': True, 'data': _serialize(p)})
    s = PrescriptionSerializer(p, data=request.data, partial=request.method == 'PATCH')
    s.is_valid(raise_exception=True)
    p = svc.update_prescription(p, s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Prescription updated successfully', 'data': _serialize(p)})


@api_view(['PATCH', 'POST'])
@permission_classes([DoctorWrites])
def complete_prescription(request, pk: int):
    p = svc.complete_prescription(svc.get_prescription(pk), actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Prescription marked as completed', 'data': _serialize(p)})


@api_view(['GET'])
@permission_classes([IsOnboarded])
def prescriptions_for_patient(request, patient_id: str):
    return _list_response(*svc.list_prescriptions(patient_id=patient_id, page=1, limit=200))


@api_view(['GET'])
@permission_classes([IsOnboarded])
def active_for_patient(request, patient_id: str):
    return _list_response(svc.active_for_patient(patient_id))


@api_view(['GET'])
@permission_classes([IsOnboarded])
def prescriptions_for_doctor(request, doctor_id: str):
    return _list_response(*svc.list_prescriptions(doctor_id=doctor_id, page=1, limit=200))


@api_view(['GET'])
@permission_classes([IsOnboarded])
def prescription_stats(request):
    q = PrescriptionStatsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'success': True, 'data': svc.stats_overview(**q.validated_data)})

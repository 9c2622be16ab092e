"""
Teleconsultation session endpoints.

Sessions are created by doctors and listed for doctors (their own) and
for patients. There are no update or delete routes.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.models import LiveSession
from clinic.permissions import IsDoctor, IsOnboarded
from clinic.serializers.sessions import (
    DoctorSessionsQuerySerializer,
    LiveSessionCreateSerializer,
    PatientSessionsQuerySerializer,
)
from clinic.services import sessions as svc


def _serialize(s: LiveSession) -> dict:
    return {
        'id': s.id,
        'sessionName': s.session_name,
        'sessionUrl': s.session_url,
        'doctorId': s.doctor_id,
        'doctorName': s.doctor_name,
        'doctorEmail': s.doctor_email,
        'createdAt': s.created_at.isoformat() if s.created_at else None,
    }


@api_view(['POST'])
@permission_classes([IsDoctor])
def create_session(request):
    s = LiveSessionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    session = svc.create_session(
        session_name=vd['sessionName'],
        session_url=vd['sessionUrl'],
        doctor_id=vd['doctorId'],
        doctor_name=vd.get('doctorName', ''),
        doctor_email=vd.get('doctorEmail', ''),
        actor_id=request.user.external_id,
    )
    return Response({'success': True, 'data': _serialize(session)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsOnboarded])
def doctor_sessions(request):
    q = DoctorSessionsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = [_serialize(s) for s in svc.list_for_doctor(q.validated_data['doctorId'])]
    return Response({'success': True, 'count': len(data), 'data': data})


@api_view(['GET'])
@permission_classes([IsOnboarded])
def patient_sessions(request):
    q = PatientSessionsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = [_serialize(s) for s in svc.list_for_patient(q.validated_data['patientId'])]
    return Response({'success': True, 'count': len(data), 'data': data})

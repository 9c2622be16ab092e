"""
Patient intake record endpoints.

Records are addressed by numeric id or by the patient's identity id.
Listing, statistics and the per-doctor and comprehensive views are for
the care team; any onboarded profile can file and edit a record, and
only clinicians delete one.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.models import PatientRecord
from clinic.permissions import CareTeamReads, ClinicianDeletes, IsCareTeam, IsOnboarded
from clinic.serializers.patients import (
    AllergySerializer,
    ConditionSerializer,
    DoctorPatientsQuerySerializer,
    FamilyHistorySerializer,
    PatientListQuerySerializer,
    PatientRecordSerializer,
    SurgerySerializer,
)
from clinic.services import patients as svc

from .appointments import _serialize as serialize_appointment
from .documents import _serialize as serialize_document
from .prescriptions import _serialize as serialize_prescription
from .vitals import _serialize as serialize_vital


def _iso(value):
    return value.isoformat() if value else None


def _serialize(r: PatientRecord) -> dict:
    return {
        'id': r.id,
        'patient_id': r.patient_id,
        'primary_doctor_id': r.primary_doctor_id,
        'name': r.name,
        'date_of_birth': _iso(r.date_of_birth),
        'age': r.age,
        'gender': r.gender,
        'blood_group': r.blood_group,
        'emergency_contact_name': r.emergency_contact_name,
        'emergency_contact_phone': r.emergency_contact_phone,
        'address': r.address,
        'allergies': r.allergies,
        'chronic_conditions': r.chronic_conditions,
        'past_surgeries': r.past_surgeries,
        'family_history': r.family_history,
        'is_active': r.is_active,
        'created_at': _iso(r.created_at),
        'updated_at': _iso(r.updated_at),
    }


@api_view(['GET', 'POST'])
@permission_classes([CareTeamReads])
def patients(request):
    if request.method == 'GET':
        q = PatientListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = dict(q.validated_data)
        items, pagination = svc.list_records(sort_by=vd.pop('sortBy'), **vd)
        return Response({'success': True, 'count': len(items), 'pagination': pagination,
                         'data': [_serialize(r) for r in items]})
    s = PatientRecordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    record = svc.create_record(s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Patient profile created successfully', 'data': _serialize(record)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([ClinicianDeletes])
def patient_detail(request, ref: str):
    record = svc.get_record(ref)
    if request.method == 'GET':
        return Response({'success': True, 'data': _serialize(record)})
    if request.method == 'DELETE':
        svc.delete_record(record, actor_id=request.user.external_id)
        return Response({'success': True, 'message': 'Patient profile deleted successfully', 'data': {}})
    s = PatientRecordSerializer(record, data=request.data)
    s.is_valid(raise_exception=True)
    record = svc.update_record(record, s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Patient profile updated successfully', 'data': _serialize(record)})


@api_view(['PATCH'])
@permission_classes([IsOnboarded])
def autosave_patient(request, ref: str):
    """Partial save from an in-progress form: only the submitted fields are checked."""
    record = svc.get_record(ref)
    s = PatientRecordSerializer(record, data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    record = svc.update_record(record, s.validated_data, actor_id=request.user.external_id,
                               action='patient_autosaved')
    return Response({'success': True, 'message': 'Auto-save successful', 'data': _serialize(record)})


def _history_view(field: str, serializer_class, message: str):
    @api_view(['POST'])
    @permission_classes([IsOnboarded])
    def view(request, ref: str):
        record = svc.get_record(ref)
        s = serializer_class(data=request.data)
        s.is_valid(raise_exception=True)
        record = svc.add_history_entry(record, field, s.validated_data['entry'], actor_id=request.user.external_id)
        return Response({'success': True, 'message': message, 'data': _serialize(record)},
                        status=status.HTTP_201_CREATED)
    return view


add_allergy = _history_view('allergies', AllergySerializer, 'Allergy added successfully')
add_chronic_condition = _history_view('chronic_conditions', ConditionSerializer, 'Chronic condition added successfully')
add_surgery = _history_view('past_surgeries', SurgerySerializer, 'Surgery record added successfully')


@api_view(['PUT'])
@permission_classes([IsOnboarded])
def update_family_history(request, ref: str):
    record = svc.get_record(ref)
    s = FamilyHistorySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    record = svc.set_family_history(record, s.validated_data['family_history'], actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Family history updated successfully', 'data': _serialize(record)})


@api_view(['GET'])
@permission_classes([IsCareTeam])
def patients_for_doctor(request, doctor_id: str):
    q = DoctorPatientsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = [_serialize(r) for r in svc.for_doctor(doctor_id, q.validated_data['limit'])]
    return Response({'success': True, 'count': len(data), 'data': data})


@api_view(['GET'])
@permission_classes([IsCareTeam])
def patient_stats(request):
    stats = svc.stats_overview()
    stats['recentPatients'] = [
        {'id': r.id, 'name': r.name, 'date_of_birth': _iso(r.date_of_birth), 'gender': r.gender,
         'is_active': r.is_active, 'created_at': _iso(r.created_at)}
        for r in stats['recentPatients']
    ]
    return Response({'success': True, 'data': stats})


@api_view(['GET'])
@permission_classes([IsCareTeam])
def comprehensive_patient(request, ref: str):
    data = svc.comprehensive(svc.get_record(ref))
    latest = data['statistics']['latestVitals']
    return Response({'success': True, 'data': {
        'patient': _serialize(data['patient']),
        'vitals': [serialize_vital(v) for v in data['vitals']],
        'documents': [serialize_document(d) for d in data['documents']],
        'prescriptions': [serialize_prescription(p) for p in data['prescriptions']],
        'appointments': [serialize_appointment(a) for a in data['appointments']],
        'statistics': {**data['statistics'], 'latestVitals': serialize_vital(latest) if latest else None},
    }})

from datetime import date, timedelta

import pytest

from clinic.models import Appointment, AuditEvent, PatientRecord, PhysicalVital, Prescription

pytestmark = pytest.mark.django_db


def _payload(**extra):
    return {
        'patient_id': 'user_pat',
        'primary_doctor_id': 'user_doc',
        'name': 'Pat Lee',
        'date_of_birth': '1990-05-17',
        'gender': 'female',
        'blood_group': 'O+',
        'emergency_contact_name': 'Sam Lee',
        'emergency_contact_phone': '+1 (555) 010-2000',
        'allergies': ['Penicillin', 'penicillin'],
        **extra,
    }


def _record(**fields):
    defaults = {
        'name': 'Rae Kim',
        'date_of_birth': date(1975, 1, 9),
        'gender': 'male',
        'emergency_contact_phone': '555 0101',
    }
    defaults.update(fields)
    return PatientRecord.objects.create(**defaults)


def test_patient_files_own_record(patient_client):
    r = patient_client.post('/api/patients', _payload(), format='json')
    assert r.status_code == 201
    data = r.data['data']
    assert data['patient_id'] == 'user_pat'
    assert data['allergies'] == ['Penicillin']
    assert data['age'] >= 35
    assert data['is_active'] is True
    assert AuditEvent.objects.filter(action='patient_created', actor_id='user_pat').exists()


@pytest.mark.parametrize('field, value, message', [
    ('emergency_contact_phone', 'call me', 'emergency_contact_phone: Please provide a valid phone number'),
    ('gender', 'Male', 'gender: Please select a valid gender option'),
    ('blood_group', 'C+', 'blood_group: Please select a valid blood group'),
    ('date_of_birth', str(date.today() + timedelta(days=1)), 'date_of_birth: Date of birth must be in the past'),
    ('date_of_birth', '1800-01-01', 'date_of_birth: Please provide a valid date of birth'),
    ('patient_id', 42, 'patient_id: Must be an identity provider id string.'),
])
def test_record_validation(patient_client, field, value, message):
    r = patient_client.post('/api/patients', _payload(**{field: value}), format='json')
    assert r.status_code == 400
    assert r.data['message'] == message
    assert PatientRecord.objects.count() == 0


def test_record_requires_name_and_emergency_phone(patient_client):
    payload = _payload()
    del payload['emergency_contact_phone']
    r = patient_client.post('/api/patients', payload, format='json')
    assert r.status_code == 400
    assert 'emergency_contact_phone' in r.data['errors']


def test_one_record_per_account(patient_client):
    assert patient_client.post('/api/patients', _payload(), format='json').status_code == 201
    r = patient_client.post('/api/patients', _payload(name='Other'), format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'patient_id: A patient record already exists for this account'
    assert PatientRecord.objects.count() == 1


def test_record_lookup_by_id_or_identity(patient_client):
    rec = _record(patient_id='user_pat')
    assert patient_client.get(f'/api/patients/{rec.id}').data['data']['name'] == 'Rae Kim'
    assert patient_client.get('/api/patients/user_pat').data['data']['id'] == rec.id
    r = patient_client.get('/api/patients/user_nobody')
    assert r.status_code == 404
    assert r.data['message'] == 'Patient record not found'


def test_autosave_checks_only_submitted_fields(patient_client):
    rec = _record(patient_id='user_pat', blood_group='A+')
    r = patient_client.patch(f'/api/patients/{rec.id}/autosave', {'address': '12 Elm St'}, format='json')
    assert r.status_code == 200
    assert r.data['message'] == 'Auto-save successful'
    assert r.data['data']['address'] == '12 Elm St'
    assert r.data['data']['blood_group'] == 'A+'

    r = patient_client.patch(f'/api/patients/{rec.id}/autosave', {'blood_group': 'Z'}, format='json')
    assert r.status_code == 400
    assert PatientRecord.objects.get(pk=rec.id).blood_group == 'A+'


def test_full_update_needs_required_fields(patient_client):
    rec = _record(patient_id='user_pat')
    r = patient_client.put(f'/api/patients/{rec.id}', {'address': 'nowhere'}, format='json')
    assert r.status_code == 400
    r = patient_client.put(f'/api/patients/{rec.id}', _payload(name='Pat Renamed'), format='json')
    assert r.status_code == 200
    assert r.data['data']['name'] == 'Pat Renamed'


def test_history_entries_append_without_duplicates(patient_client):
    rec = _record(allergies=['Latex'])
    r = patient_client.post(f'/api/patients/{rec.id}/allergies', {'allergy': 'Peanuts'}, format='json')
    assert r.status_code == 201
    assert r.data['data']['allergies'] == ['Latex', 'Peanuts']
    r = patient_client.post(f'/api/patients/{rec.id}/allergies', {'allergy': 'latex'}, format='json')
    assert r.data['data']['allergies'] == ['Latex', 'Peanuts']

    patient_client.post(f'/api/patients/{rec.id}/chronic-conditions', {'condition': 'Asthma'}, format='json')
    patient_client.post(f'/api/patients/{rec.id}/surgeries', {'surgery': 'Appendectomy 2004'}, format='json')
    rec.refresh_from_db()
    assert rec.chronic_conditions == ['Asthma']
    assert rec.past_surgeries == ['Appendectomy 2004']

    r = patient_client.post(f'/api/patients/{rec.id}/surgeries', {'surgery': '<b></b>'}, format='json')
    assert r.status_code == 400


def test_family_history_is_replaced(patient_client):
    rec = _record(family_history='Diabetes (father)')
    r = patient_client.put(f'/api/patients/{rec.id}/family-history',
                           {'family_history': 'Hypertension (mother)'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['family_history'] == 'Hypertension (mother)'


def test_listing_is_for_the_care_team(patient_client, nurse_client):
    _record(name='Ann Smith')
    _record(name='Bo Jones', emergency_contact_phone='777 1234', is_active=False)
    assert patient_client.get('/api/patients').status_code == 403

    r = nurse_client.get('/api/patients')
    assert r.status_code == 200
    assert r.data['pagination']['total'] == 2
    assert [p['name'] for p in nurse_client.get('/api/patients', {'search': '777'}).data['data']] == ['Bo Jones']
    assert nurse_client.get('/api/patients', {'is_active': 'true'}).data['count'] == 1
    r = nurse_client.get('/api/patients', {'sortBy': 'name', 'order': 'asc'})
    assert [p['name'] for p in r.data['data']] == ['Ann Smith', 'Bo Jones']


def test_only_clinicians_delete(patient_client, doctor_client):
    rec = _record()
    assert patient_client.delete(f'/api/patients/{rec.id}').status_code == 403
    r = doctor_client.delete(f'/api/patients/{rec.id}')
    assert r.status_code == 200
    assert r.data == {'success': True, 'message': 'Patient profile deleted successfully', 'data': {}}
    assert doctor_client.get(f'/api/patients/{rec.id}').status_code == 404


def test_patients_for_doctor_lists_active_only(doctor_client):
    _record(name='Mine', primary_doctor_id='user_doc')
    _record(name='Former', primary_doctor_id='user_doc', is_active=False)
    _record(name='Elsewhere', primary_doctor_id='user_other')
    r = doctor_client.get('/api/patients/doctor/user_doc')
    assert r.status_code == 200
    assert [p['name'] for p in r.data['data']] == ['Mine']


def test_patient_stats_overview(nurse_client, patient_client):
    _record(blood_group='O+')
    _record(blood_group='O+')
    _record(blood_group='B-', is_active=False)
    _record()
    assert patient_client.get('/api/patients/stats/overview').status_code == 403
    data = nurse_client.get('/api/patients/stats/overview').data['data']
    assert data['totalPatients'] == 4
    assert data['activePatients'] == 3
    assert data['inactivePatients'] == 1
    assert data['bloodGroupStats'] == [{'blood_group': 'O+', 'count': 2}, {'blood_group': 'B-', 'count': 1}]
    assert len(data['recentPatients']) == 4


def test_comprehensive_view_gathers_related_records(doctor_client):
    rec = _record(patient_id='user_pat')
    PhysicalVital.objects.create(patient_id='user_pat', heart_rate=72)
    Prescription.objects.create(patient_id='user_pat', doctor_id='user_doc', medication_name='X',
                                dosage='1', frequency='1', duration_days=3)
    Appointment.objects.create(patient_id='user_pat', doctor_id='user_doc', appointment_type='consultation')
    Prescription.objects.create(patient_id='user_else', doctor_id='user_doc', medication_name='Y',
                                dosage='1', frequency='1', duration_days=3)

    r = doctor_client.get('/api/patients/user_pat/comprehensive')
    assert r.status_code == 200
    data = r.data['data']
    assert data['patient']['id'] == rec.id
    assert [p['medication_name'] for p in data['prescriptions']] == ['X']
    assert data['statistics']['totalVitals'] == 1
    assert data['statistics']['totalAppointments'] == 1
    assert data['statistics']['totalDocuments'] == 0
    assert data['statistics']['latestVitals']['heart_rate'] == 72

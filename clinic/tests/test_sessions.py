import pytest
from rest_framework import status
from rest_framework.test import APITestCase

from clinic.models import LiveSession, Role
from clinic.services import sessions as svc

from .conftest import make_profile, session_token

pytestmark = pytest.mark.django_db


def test_create_session_returns_201_with_record(doctor_client):
    r = doctor_client.post('/api/live-sessions', {
        'sessionName': 'Jane Doe', 'sessionUrl': 'https://meet/x', 'doctorId': 'doc1',
    }, format='json')
    assert r.status_code == 201
    data = r.data['data']
    assert data['sessionName'] == 'Jane Doe'
    assert data['sessionUrl'] == 'https://meet/x'
    assert data['doctorId'] == 'doc1'
    assert data['id'] and data['createdAt']
    assert LiveSession.objects.count() == 1


@pytest.mark.parametrize('missing', ['sessionName', 'sessionUrl', 'doctorId'])
def test_create_session_requires_name_url_and_doctor(doctor_client, missing):
    payload = {'sessionName': 'Jane Doe', 'sessionUrl': 'https://meet/x', 'doctorId': 'doc1'}
    payload.pop(missing)
    r = doctor_client.post('/api/live-sessions', payload, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Patient name, session URL, and doctor ID are required'
    assert LiveSession.objects.count() == 0


@pytest.mark.parametrize('bad', [42, {'id': 'doc1'}, ['doc1']])
def test_create_session_rejects_non_string_doctor_id(doctor_client, bad):
    r = doctor_client.post('/api/live-sessions', {
        'sessionName': 'Jane Doe', 'sessionUrl': 'https://meet/x', 'doctorId': bad,
    }, format='json')
    assert r.status_code == 400
    assert 'doctorId' in r.data['errors']
    assert LiveSession.objects.count() == 0


def test_doctor_listing_is_filtered_and_newest_first(doctor_client):
    first = svc.create_session(session_name='a', session_url='https://meet/a', doctor_id='doc1')
    svc.create_session(session_name='b', session_url='https://meet/b', doctor_id='doc2')
    second = svc.create_session(session_name='c', session_url='https://meet/c', doctor_id='doc1')
    r = doctor_client.get('/api/live-sessions/doctor', {'doctorId': 'doc1'})
    assert r.status_code == 200
    assert [s['id'] for s in r.data['data']] == [second.id, first.id]
    assert r.data['count'] == 2


def test_doctor_listing_requires_doctor_id(doctor_client):
    r = doctor_client.get('/api/live-sessions/doctor')
    assert r.status_code == 400
    assert r.data['message'] == 'Doctor ID is required'


def test_patient_listing_returns_every_session(patient_client):
    svc.create_session(session_name='a', session_url='https://meet/a', doctor_id='doc1')
    svc.create_session(session_name='b', session_url='https://meet/b', doctor_id='doc2')
    r = patient_client.get('/api/live-sessions/patient', {'patientId': 'any-id'})
    assert r.status_code == 200
    assert r.data['count'] == 2
    assert [s['sessionName'] for s in r.data['data']] == ['b', 'a']


def test_patient_listing_requires_patient_id(patient_client):
    r = patient_client.get('/api/live-sessions/patient', {'patientId': '  '})
    assert r.status_code == 400
    assert r.data['message'] == 'Patient ID is required'


def test_patient_cannot_create_sessions(patient_client):
    r = patient_client.post('/api/live-sessions', {
        'sessionName': 'Jane Doe', 'sessionUrl': 'https://meet/x', 'doctorId': 'doc1',
    }, format='json')
    assert r.status_code == 403
    assert LiveSession.objects.count() == 0


class LiveSessionVisibilityTests(APITestCase):
    """Sessions created by one doctor, seen from the doctor and patient sides."""

    def setUp(self) -> None:
        self.doctor = make_profile('user_doc_a', Role.DOCTOR, name='Dr. A')
        self.other_doctor = make_profile('user_doc_b', Role.DOCTOR, name='Dr. B')
        self.patient = make_profile('user_pat_a', Role.PATIENT)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {session_token(self.doctor.external_id)}")

    def _create(self, name):
        return self.client.post('/api/live-sessions', {
            'sessionName': name,
            'sessionUrl': f'https://meet.example.com/{name}',
            'doctorId': self.doctor.external_id,
            'doctorName': self.doctor.name,
        }, format='json')

    def test_sessions_are_immutable(self):
        r = self._create('room1')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        session_id = r.data['data']['id']
        self.assertEqual(self.client.patch(f'/api/live-sessions/{session_id}', {}).status_code,
                         status.HTTP_404_NOT_FOUND)
        r = self.client.put('/api/live-sessions', {'sessionName': 'x'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_other_doctor_sees_none_of_them(self):
        self._create('room1')
        self._create('room2')
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {session_token(self.other_doctor.external_id)}")
        r = self.client.get('/api/live-sessions/doctor', {'doctorId': self.other_doctor.external_id})
        self.assertEqual(r.data['count'], 0)
        r = self.client.get('/api/live-sessions/doctor', {'doctorId': self.doctor.external_id})
        self.assertEqual([s['sessionName'] for s in r.data['data']], ['room2', 'room1'])
        self.assertEqual(r.data['data'][0]['doctorName'], 'Dr. A')

    def test_patient_sees_every_session(self):
        self._create('room1')
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {session_token(self.patient.external_id)}")
        r = self.client.get('/api/live-sessions/patient', {'patientId': self.patient.external_id})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['count'], 1)

import pytest

from clinic.models import Role
from clinic.services.profiles import get_profile, get_role, has_role, list_by_role, parse_role

from .conftest import client_for, make_profile

pytestmark = pytest.mark.django_db


def test_lookups_reflect_latest_write():
    p = make_profile('user_lk', Role.CARETAKER)
    assert get_profile('user_lk').pk == p.pk
    assert get_role('user_lk') is Role.CARETAKER
    p.role = Role.NURSE
    p.save()
    assert get_role('user_lk') is Role.NURSE
    assert has_role('user_lk', Role.NURSE)
    assert not has_role('user_lk', Role.CARETAKER)


def test_lookups_for_unknown_identity_return_none():
    assert get_profile('user_none') is None
    assert get_role('user_none') is None
    assert get_profile('') is None


def test_parse_role_is_closed():
    assert parse_role('lab_reporter') is Role.LAB_REPORTER
    assert parse_role('superuser') is None


def test_list_by_role_skips_inactive():
    make_profile('user_d1', Role.DOCTOR, name='B')
    make_profile('user_d2', Role.DOCTOR, name='A')
    make_profile('user_d3', Role.DOCTOR, is_active=False)
    assert [p.external_id for p in list_by_role(Role.DOCTOR)] == ['user_d2', 'user_d1']


def test_me_returns_profile_or_missing_fields():
    make_profile('user_me', Role.NURSE)
    r = client_for('user_me').get('/api/users/me')
    assert r.status_code == 200
    assert r.data['data']['role'] == 'nurse'
    assert r.data['missingFields'] == []

    r = client_for('user_nobody').get('/api/users/me')
    assert r.status_code == 200
    assert r.data['data'] is None
    assert r.data['missingFields'] == ['phone', 'role', 'dateOfBirth', 'gender']


def test_doctors_directory(patient_client, doctor):
    r = patient_client.get('/api/users/doctors')
    assert r.status_code == 200
    assert [d['externalId'] for d in r.data['data']] == [doctor.external_id]


def test_users_by_role_for_care_team(nurse_client, patient):
    r = nurse_client.get('/api/users/by-role/patient')
    assert r.status_code == 200
    assert r.data['count'] == 1
    assert r.data['data'][0]['externalId'] == patient.external_id


def test_users_by_role_rejects_unknown_role(nurse_client):
    r = nurse_client.get('/api/users/by-role/wizard')
    assert r.status_code == 400
    assert r.data['message'].startswith('Invalid role. Must be one of: patient, doctor')


def test_patients_cannot_browse_by_role(patient_client):
    assert patient_client.get('/api/users/by-role/doctor').status_code == 403

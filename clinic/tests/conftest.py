import time
from datetime import date

import pytest
from django.conf import settings
from django.core.cache import cache
from rest_framework.test import APIClient
from rest_framework_simplejwt.backends import TokenBackend

from clinic.models import Gender, Role, UserProfile


def session_token(sub, email=None, ttl=300, **claims):
    payload = {'sub': sub, 'exp': int(time.time()) + ttl, **claims}
    if email:
        payload['email'] = email
    return TokenBackend('HS256', signing_key=settings.IDP_JWT_SECRET).encode(payload)


def client_for(sub, email=None, **claims):
    c = APIClient()
    c.credentials(HTTP_AUTHORIZATION=f"Bearer {session_token(sub, email, **claims)}")
    return c


def make_profile(external_id, role=Role.PATIENT, complete=True, **fields):
    defaults = {
        'email': f"{external_id}@example.com",
        'name': external_id,
        'role': role,
        'is_active': True,
    }
    if complete:
        defaults.update(phone='5551234567', date_of_birth=date(1990, 5, 17), gender=Gender.FEMALE)
    defaults.update(fields)
    return UserProfile.objects.create(external_id=external_id, **defaults)


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters live in the local-memory cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def doctor(db):
    return make_profile('user_doc', Role.DOCTOR, name='Dr. Ada')


@pytest.fixture
def patient(db):
    return make_profile('user_pat', Role.PATIENT, name='Pat Lee')


@pytest.fixture
def nurse(db):
    return make_profile('user_nurse', Role.NURSE)


@pytest.fixture
def doctor_client(doctor):
    return client_for(doctor.external_id, doctor.email)


@pytest.fixture
def patient_client(patient):
    return client_for(patient.external_id, patient.email)


@pytest.fixture
def nurse_client(nurse):
    return client_for(nurse.external_id, nurse.email)

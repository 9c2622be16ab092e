import pytest
from rest_framework.test import APIClient

from clinic.access import (
    ALL_ROLES,
    DASHBOARDS,
    Decision,
    dashboard_for,
    evaluate,
    roles_for_path,
)
from clinic.authentication import CallerIdentity
from clinic.models import Role, UserProfile

from .conftest import client_for, make_profile, session_token

pytestmark = pytest.mark.django_db


def _profile(role=Role.PATIENT, complete=True, active=True):
    p = UserProfile(external_id='u', role=role, is_active=active)
    if complete:
        from datetime import date
        p.phone, p.date_of_birth, p.gender = '5550000', date(1990, 1, 1), 'other'
    return p


CALLER = CallerIdentity('u')


@pytest.mark.parametrize('path', ['/sign-in', '/sign-up/step', '/api/webhooks/identity',
                                  '/auth/callback', '/complete-profile', '/api/users/create-profile'])
def test_public_routes_proceed_without_caller(path):
    assert evaluate(path, None, None) is Decision.PROCEED


def test_protected_route_without_caller_redirects_to_sign_in():
    assert evaluate('/patient/dashboard', None, None) is Decision.REDIRECT_SIGN_IN


def test_missing_or_incomplete_profile_redirects_to_completion():
    assert evaluate('/patient/dashboard', CALLER, None) is Decision.REDIRECT_COMPLETE_PROFILE
    assert evaluate('/patient/dashboard', CALLER, _profile(complete=False)) is Decision.REDIRECT_COMPLETE_PROFILE


def test_onboarding_routes_proceed_for_incomplete_profile():
    assert evaluate('/complete-profile', CALLER, None) is Decision.PROCEED
    assert evaluate('/auth/callback', CALLER, _profile(complete=False)) is Decision.PROCEED


def test_role_table_grants_and_denies():
    assert evaluate('/doctor/dashboard', CALLER, _profile(Role.DOCTOR)) is Decision.PROCEED
    assert evaluate('/doctor/dashboard', CALLER, _profile(Role.PATIENT)) is Decision.DENY
    assert evaluate('/doctor/patients/42', CALLER, _profile(Role.PATIENT)) is Decision.DENY


def test_unmapped_path_open_to_any_onboarded_role():
    assert roles_for_path('/analytics') is None
    assert evaluate('/settings', CALLER, _profile(Role.CARETAKER)) is Decision.PROCEED


def test_inactive_profile_denied_but_unauthorized_page_reachable():
    p = _profile(active=False)
    assert evaluate('/patient/dashboard', CALLER, p) is Decision.DENY
    assert evaluate('/unauthorized', CALLER, p) is Decision.PROCEED


def test_explicit_roles_override_route_table():
    assert evaluate('/analytics', CALLER, _profile(Role.NURSE), [Role.DOCTOR, Role.ADMIN]) is Decision.DENY
    assert evaluate('/analytics', CALLER, _profile(Role.ADMIN), [Role.DOCTOR, Role.ADMIN]) is Decision.PROCEED


def test_every_role_has_a_dashboard():
    assert set(DASHBOARDS) == set(ALL_ROLES)
    for role in Role:
        assert roles_for_path(dashboard_for(role)) == frozenset({role})


def test_evaluate_performs_no_writes(django_assert_num_queries):
    with django_assert_num_queries(0):
        evaluate('/doctor/dashboard', CALLER, _profile(Role.DOCTOR))


# Page presentation (middleware and decorator)

def _browser(sub=None, email=None):
    c = APIClient()
    if sub:
        c.cookies['__session'] = session_token(sub, email)
    return c


def test_middleware_redirects_anonymous_to_sign_in():
    r = _browser().get('/patient/dashboard')
    assert r.status_code == 302
    assert r['Location'] == '/sign-in?redirect_url=%2Fpatient%2Fdashboard'


def test_middleware_treats_bad_token_as_signed_out():
    c = APIClient()
    c.cookies['__session'] = 'not-a-token'
    r = c.get('/doctor/dashboard')
    assert r.status_code == 302
    assert r['Location'].startswith('/sign-in')


def test_middleware_redirects_incomplete_profile():
    make_profile('user_half', complete=False)
    r = _browser('user_half').get('/patient/dashboard')
    assert r.status_code == 302
    assert r['Location'] == '/complete-profile'


def test_middleware_redirects_wrong_role_to_unauthorized(patient):
    r = _browser(patient.external_id).get('/doctor/dashboard')
    assert r.status_code == 302
    assert r['Location'] == '/unauthorized'


def test_dashboard_renders_for_owner(doctor):
    r = _browser(doctor.external_id).get('/doctor/dashboard')
    assert r.status_code == 200
    body = r.json()
    assert body['data']['dashboard'] == 'doctor'
    assert body['data']['profile']['externalId'] == doctor.external_id
    assert 'pendingRequests' in body['data']['summary']


def test_role_change_takes_effect_on_next_request(patient):
    c = _browser(patient.external_id)
    assert c.get('/doctor/dashboard').status_code == 302
    UserProfile.objects.filter(pk=patient.pk).update(role=Role.DOCTOR)
    assert c.get('/doctor/dashboard').status_code == 200


def test_analytics_shows_inline_notice_to_other_roles(nurse):
    r = _browser(nurse.external_id).get('/analytics')
    assert r.status_code == 403
    body = r.json()
    assert body['restricted'] is True
    assert body['allowedRoles'] == ['admin', 'doctor']
    assert body['role'] == 'nurse'
    assert body['message'] == 'Access restricted to: admin, doctor. Your role: nurse'


def test_analytics_open_to_doctor(doctor):
    r = _browser(doctor.external_id).get('/analytics')
    assert r.status_code == 200
    assert 'appointmentsByStatus' in r.json()['data']


def test_auth_callback_routes_new_caller_to_completion():
    r = _browser('user_brand_new', 'brand@example.com').get('/auth/callback')
    assert r.status_code == 302
    assert r['Location'] == '/complete-profile'
    assert UserProfile.objects.get(external_id='user_brand_new').role == Role.PATIENT


def test_auth_callback_routes_complete_caller_to_dashboard(doctor):
    r = _browser(doctor.external_id, doctor.email).get('/auth/callback')
    assert r.status_code == 302
    assert r['Location'] == '/doctor/dashboard'


def test_complete_profile_page_lists_missing_fields():
    make_profile('user_part', complete=False, phone='5551112222')
    r = _browser('user_part').get('/complete-profile')
    assert r.status_code == 200
    assert r.json()['data']['missingFields'] == ['dateOfBirth', 'gender']


# API presentation (permission classes)

def test_api_without_token_is_401():
    r = APIClient().get('/api/users/doctors')
    assert r.status_code == 401
    assert r.data['success'] is False


def test_api_with_invalid_token_is_401():
    c = APIClient()
    c.credentials(HTTP_AUTHORIZATION='Bearer garbage')
    r = c.get('/api/users/doctors')
    assert r.status_code == 401
    assert r.data['message'] == 'Invalid or expired session token'


def test_api_with_incomplete_profile_is_403():
    make_profile('user_inc', complete=False)
    r = client_for('user_inc').get('/api/users/doctors')
    assert r.status_code == 403
    assert r.data['message'] == 'Complete your profile to continue'


def test_api_role_denial_names_allowed_roles(patient_client):
    r = patient_client.post('/api/live-sessions', {
        'sessionName': 'x', 'sessionUrl': 'https://meet.example.com/x', 'doctorId': 'user_doc',
    }, format='json')
    assert r.status_code == 403
    assert r.data['message'] == 'Access restricted to: doctor. Your role: patient'

import pytest
import requests
from django.conf import settings as django_settings
from django.db import DatabaseError
from rest_framework.exceptions import ValidationError

from clinic.exceptions import PersistenceError
from clinic.models import AuditEvent, Role, UserProfile
from clinic.services import identity as identity_service
from clinic.services import idp
from clinic.services.identity import (
    apply_identity_deleted,
    apply_identity_updated,
    complete_profile,
    on_first_authentication,
)
from clinic.services.idp import Identity, IdentityProviderError

from .conftest import client_for, make_profile

pytestmark = pytest.mark.django_db

SUBMISSION = {'phone': '555-0100', 'role': 'doctor', 'dateOfBirth': '1985-03-02', 'gender': 'male'}


def test_first_authentication_creates_bare_profile_with_default_role():
    identity = Identity('user_new', 'New.Person@Example.com', 'New', 'Person')
    profile, created = on_first_authentication(identity)
    assert created is True
    assert profile.role == Role.PATIENT
    assert profile.email == 'new.person@example.com'
    assert profile.name == 'New Person'
    assert profile.is_complete is False
    assert profile.missing_fields == ['phone', 'dateOfBirth', 'gender']
    assert AuditEvent.objects.filter(action='profile_created', actor_id='user_new').exists()


def test_first_authentication_is_idempotent_and_stamps_last_login():
    identity = Identity('user_again', 'again@example.com')
    first, _ = on_first_authentication(identity)
    second, created = on_first_authentication(identity)
    assert created is False
    assert second.pk == first.pk
    assert second.last_login >= first.last_login
    assert UserProfile.objects.filter(external_id='user_again').count() == 1


def test_first_authentication_leaves_email_match_with_other_id_untouched():
    existing = make_profile('user_old', email='shared@example.com')
    profile, created = on_first_authentication(Identity('user_fresh', 'shared@example.com'))
    assert created is False
    assert profile.pk == existing.pk
    assert profile.external_id == 'user_old'


def test_display_name_falls_back_to_email_local_part():
    assert Identity('x', 'jane.doe@example.com').display_name == 'jane.doe'
    assert Identity('x', None).display_name == ''


def test_complete_profile_creates_when_absent():
    profile, created = complete_profile(Identity('user_c', 'c@example.com', 'Cee'), SUBMISSION)
    assert created is True
    assert profile.role == Role.DOCTOR
    assert profile.is_complete
    assert str(profile.date_of_birth) == '1985-03-02'


def test_complete_profile_updates_bare_profile():
    on_first_authentication(Identity('user_u', 'u@example.com'))
    profile, created = complete_profile(Identity('user_u', 'u@example.com'), SUBMISSION)
    assert created is False
    assert profile.is_complete
    assert UserProfile.objects.filter(external_id='user_u').count() == 1


def test_complete_profile_rebinds_email_match():
    make_profile('user_legacy', complete=False, email='bind@example.com')
    profile, created = complete_profile(Identity('user_current', 'bind@example.com'), SUBMISSION)
    assert created is False
    assert profile.external_id == 'user_current'
    assert not UserProfile.objects.filter(external_id='user_legacy').exists()


@pytest.mark.parametrize('missing', ['phone', 'role', 'dateOfBirth', 'gender'])
def test_complete_profile_requires_every_field(missing):
    data = {k: v for k, v in SUBMISSION.items() if k != missing}
    with pytest.raises(ValidationError):
        complete_profile(Identity('user_v', 'v@example.com'), data)
    assert not UserProfile.objects.filter(external_id='user_v').exists()


def test_complete_profile_rejects_unknown_role():
    with pytest.raises(ValidationError):
        complete_profile(Identity('user_r', 'r@example.com'), {**SUBMISSION, 'role': 'superuser'})


def test_admin_email_is_promoted(settings):
    settings.ADMIN_EMAIL = 'boss@example.com'
    profile, _ = complete_profile(Identity('user_boss', 'Boss@Example.com'), {**SUBMISSION, 'role': 'patient'})
    assert profile.role == Role.ADMIN


def test_complete_profile_refuses_email_held_by_another_profile():
    make_profile('user_a', complete=False, email='a@example.com')
    make_profile('user_b', email='b@example.com')
    with pytest.raises(ValidationError) as excinfo:
        complete_profile(Identity('user_a', 'b@example.com'), SUBMISSION)
    assert excinfo.value.status_code == 400
    a = UserProfile.objects.get(external_id='user_a')
    assert a.email == 'a@example.com'
    assert a.is_complete is False
    assert UserProfile.objects.get(external_id='user_b').email == 'b@example.com'


def test_create_profile_endpoint_reports_email_collision_as_400():
    make_profile('user_a', complete=False, email='a@example.com')
    make_profile('user_b', email='b@example.com')
    r = client_for('user_a', 'b@example.com').post('/api/users/create-profile', SUBMISSION, format='json')
    assert r.status_code == 400
    assert r.data['success'] is False
    assert r.data['message'] == 'email: This email address is already linked to another profile'


def test_failed_completion_leaves_bare_profile_unmodified(monkeypatch):
    bare, _ = on_first_authentication(Identity('user_bare', 'bare@example.com'))

    def fail_save(self, *args, **kwargs):
        raise DatabaseError('disk full')

    monkeypatch.setattr(UserProfile, 'save', fail_save)
    with pytest.raises(PersistenceError):
        complete_profile(Identity('user_bare', 'bare@example.com'), SUBMISSION)
    monkeypatch.undo()

    bare.refresh_from_db()
    assert bare.role == Role.PATIENT
    assert bare.phone == ''
    assert bare.date_of_birth is None
    assert bare.is_complete is False
    assert not AuditEvent.objects.filter(action='profile_completed').exists()


def test_duplicate_identity_create_is_a_500_and_keeps_one_row(monkeypatch):
    make_profile('user_dup', email='dup@example.com')
    # lose the lookup race: the row exists but the reader did not see it
    monkeypatch.setattr(identity_service, 'find_profile', lambda identity: None)
    with pytest.raises(PersistenceError) as excinfo:
        on_first_authentication(Identity('user_dup', 'dup2@example.com'))
    assert excinfo.value.status_code == 500
    assert UserProfile.objects.filter(external_id='user_dup').count() == 1
    assert UserProfile.objects.get(external_id='user_dup').email == 'dup@example.com'


def test_identity_updated_mirrors_provider_fields():
    make_profile('user_up', name='Old Name')
    profile = apply_identity_updated({
        'id': 'user_up',
        'first_name': 'New',
        'last_name': 'Name',
        'primary_email_address_id': 'e2',
        'email_addresses': [
            {'id': 'e1', 'email_address': 'other@example.com'},
            {'id': 'e2', 'email_address': 'Primary@Example.com'},
        ],
        'image_url': 'https://img.example.com/a.png',
    })
    assert profile.name == 'New Name'
    assert profile.email == 'primary@example.com'
    assert profile.photo_url == 'https://img.example.com/a.png'


def test_identity_updated_for_unknown_id_is_noop():
    assert apply_identity_updated({'id': 'user_ghost', 'email_addresses': []}) is None
    assert UserProfile.objects.count() == 0


def test_identity_updated_keeps_email_held_by_another_profile():
    make_profile('user_a', email='a@example.com', name='Old A')
    make_profile('user_b', email='b@example.com')
    profile = apply_identity_updated({
        'id': 'user_a',
        'first_name': 'Renamed',
        'email_addresses': [{'email_address': 'b@example.com'}],
        'image_url': 'https://img.example.com/a2.png',
    })
    assert profile.email == 'a@example.com'
    assert profile.name == 'Renamed'
    assert profile.photo_url == 'https://img.example.com/a2.png'
    assert UserProfile.objects.get(external_id='user_b').email == 'b@example.com'


def test_identity_deleted_removes_profile_and_is_noop_when_absent():
    make_profile('user_del')
    assert apply_identity_deleted({'id': 'user_del'}) == 1
    assert apply_identity_deleted({'id': 'user_del'}) == 0
    assert AuditEvent.objects.filter(action='profile_deleted').count() == 1


def test_backend_settings_hold_no_frontend_identity_key():
    assert not hasattr(django_settings, 'IDP_PUBLISHABLE_KEY')
    assert hasattr(django_settings, 'IDP_SECRET_KEY')


def test_resolve_identity_fetches_when_claims_lack_email(monkeypatch, settings):
    settings.IDP_SECRET_KEY = 'sk_test'

    class FakeResponse:
        def raise_for_status(self):
            pass

        def json(self):
            return {'id': 'user_api', 'first_name': 'Api',
                    'email_addresses': [{'id': 'e', 'email_address': 'api@example.com'}]}

    calls = []

    def fake_get(url, headers, timeout):
        calls.append((url, headers))
        return FakeResponse()

    monkeypatch.setattr(idp.requests, 'get', fake_get)
    from clinic.authentication import CallerIdentity
    identity = idp.resolve_identity(CallerIdentity('user_api'))
    assert identity.email == 'api@example.com'
    assert calls[0][0].endswith('/users/user_api')
    assert calls[0][1]['Authorization'] == 'Bearer sk_test'


def test_resolve_identity_wraps_transport_errors(monkeypatch, settings):
    settings.IDP_SECRET_KEY = 'sk_test'

    def boom(*args, **kwargs):
        raise requests.ConnectionError('down')

    monkeypatch.setattr(idp.requests, 'get', boom)
    from clinic.authentication import CallerIdentity
    with pytest.raises(IdentityProviderError):
        idp.resolve_identity(CallerIdentity('user_api'))


def test_create_profile_endpoint_returns_201_then_200():
    c = client_for('user_onb', 'onb@example.com')
    r = c.post('/api/users/create-profile', SUBMISSION, format='json')
    assert r.status_code == 201
    assert r.data['success'] is True
    assert r.data['message'] == 'Profile created successfully'
    assert r.data['data']['role'] == 'doctor'
    r = c.post('/api/users/create-profile', {**SUBMISSION, 'phone': '555-0199'}, format='json')
    assert r.status_code == 200
    assert r.data['message'] == 'Profile updated successfully'
    assert r.data['data']['phone'] == '555-0199'


def test_create_profile_endpoint_rejects_missing_fields():
    c = client_for('user_onb2', 'onb2@example.com')
    r = c.post('/api/users/create-profile', {'phone': '555-0100'}, format='json')
    assert r.status_code == 400
    assert r.data['success'] is False
    assert r.data['message'] == 'All fields are required'
    assert not UserProfile.objects.filter(external_id='user_onb2').exists()


def test_create_profile_endpoint_requires_a_session():
    from rest_framework.test import APIClient
    r = APIClient().post('/api/users/create-profile', SUBMISSION, format='json')
    assert r.status_code == 401
    assert r.data['success'] is False

import base64
import json
import time

import pytest
from rest_framework.test import APIClient

from clinic.exceptions import WebhookVerificationError
from clinic.models import UserProfile
from clinic.services.webhooks import sign, verify_webhook

from .conftest import make_profile

pytestmark = pytest.mark.django_db

SECRET = 'whsec_' + base64.b64encode(b'carelink-webhook-test-secret').decode()


@pytest.fixture(autouse=True)
def webhook_secret(settings):
    settings.IDP_WEBHOOK_SECRET = SECRET


def _post(event, *, secret=SECRET, timestamp=None, headers=None):
    body = json.dumps(event).encode()
    ts = str(int(time.time()) if timestamp is None else timestamp)
    sig = sign(secret, 'msg_1', ts, body)
    h = {'HTTP_SVIX_ID': 'msg_1', 'HTTP_SVIX_TIMESTAMP': ts, 'HTTP_SVIX_SIGNATURE': f"v1,{sig}"}
    if headers is not None:
        h = headers
    return APIClient().post('/api/webhooks/identity', data=body, content_type='application/json', **h)


def test_user_updated_syncs_profile():
    make_profile('user_w', name='Before')
    r = _post({'type': 'user.updated', 'data': {
        'id': 'user_w', 'first_name': 'After', 'last_name': 'Sync',
        'email_addresses': [{'id': 'e', 'email_address': 'after@example.com'}],
    }})
    assert r.status_code == 200
    assert r.data == {'success': True, 'message': 'Webhook processed successfully', 'data': {'outcome': 'updated'}}
    p = UserProfile.objects.get(external_id='user_w')
    assert p.name == 'After Sync'
    assert p.email == 'after@example.com'


def test_user_updated_with_taken_email_still_syncs_name():
    make_profile('user_a', email='a@example.com', name='Before')
    make_profile('user_b', email='b@example.com')
    r = _post({'type': 'user.updated', 'data': {
        'id': 'user_a', 'first_name': 'After', 'last_name': 'Sync',
        'email_addresses': [{'id': 'e', 'email_address': 'b@example.com'}],
    }})
    assert r.status_code == 200
    assert r.data['data'] == {'outcome': 'updated'}
    a = UserProfile.objects.get(external_id='user_a')
    assert a.name == 'After Sync'
    assert a.email == 'a@example.com'


def test_user_deleted_removes_profile():
    make_profile('user_gone')
    r = _post({'type': 'user.deleted', 'data': {'id': 'user_gone', 'deleted': True}})
    assert r.status_code == 200
    assert r.data['data']['outcome'] == 'deleted'
    assert not UserProfile.objects.filter(external_id='user_gone').exists()


def test_user_deleted_for_unknown_identity_changes_nothing():
    make_profile('user_stays')
    r = _post({'type': 'user.deleted', 'data': {'id': 'user_unknown'}})
    assert r.status_code == 200
    assert r.data['data']['outcome'] == 'ignored'
    assert UserProfile.objects.count() == 1


def test_other_events_are_acknowledged():
    r = _post({'type': 'user.created', 'data': {'id': 'user_x'}})
    assert r.status_code == 200
    assert r.data['data']['outcome'] == 'ignored'
    assert UserProfile.objects.count() == 0


def test_missing_headers_rejected():
    make_profile('user_keep')
    r = _post({'type': 'user.deleted', 'data': {'id': 'user_keep'}}, headers={})
    assert r.status_code == 400
    assert r.data['message'] == 'Error occurred -- no svix headers'
    assert UserProfile.objects.filter(external_id='user_keep').exists()


def test_bad_signature_rejected_before_mutation():
    make_profile('user_keep')
    other = 'whsec_' + base64.b64encode(b'some-other-secret').decode()
    r = _post({'type': 'user.deleted', 'data': {'id': 'user_keep'}}, secret=other)
    assert r.status_code == 400
    assert r.data['message'] == 'Invalid webhook signature'
    assert UserProfile.objects.filter(external_id='user_keep').exists()


def test_stale_timestamp_rejected():
    r = _post({'type': 'user.deleted', 'data': {'id': 'x'}}, timestamp=int(time.time()) - 3600)
    assert r.status_code == 400
    assert r.data['message'] == 'Signature timestamp outside tolerance'


def test_verify_accepts_any_listed_v1_signature():
    body = b'{"type": "user.created", "data": {}}'
    sig = sign(SECRET, 'm', '1700000000', body)
    headers = {'svix-id': 'm', 'svix-timestamp': '1700000000', 'svix-signature': f"v1,bogus v1,{sig}"}
    assert verify_webhook(headers, body, now=1700000010)['type'] == 'user.created'


def test_verify_rejects_non_object_body():
    body = b'[1, 2]'
    sig = sign(SECRET, 'm', '1700000000', body)
    headers = {'svix-id': 'm', 'svix-timestamp': '1700000000', 'svix-signature': f"v1,{sig}"}
    with pytest.raises(WebhookVerificationError):
        verify_webhook(headers, body, now=1700000000)


def test_unconfigured_secret_rejects(settings):
    settings.IDP_WEBHOOK_SECRET = ''
    r = _post({'type': 'user.deleted', 'data': {'id': 'x'}})
    assert r.status_code == 400

import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = 'Internal server error'


class PersistenceError(APIException):
    """Unexpected storage failure. Reported as a plain 500 and never retried."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = GENERIC_SERVER_ERROR
    default_code = 'persistence_error'


class WebhookVerificationError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Webhook verification failed'
    default_code = 'webhook_verification_failed'


def _first_message(data) -> str:
    if isinstance(data, dict):
        if 'detail' in data:
            return _first_message(data['detail'])
        for key, value in data.items():
            msg = _first_message(value)
            return msg if key == 'non_field_errors' else f"{key}: {msg}"
        return ''
    if isinstance(data, (list, tuple)):
        return _first_message(data[0]) if data else ''
    return str(data)


def api_exception_handler(exc, context):
    if isinstance(exc, DatabaseError):
        exc = PersistenceError()
    resp = drf_exception_handler(exc, context)
    view = context.get('view')
    if resp is None:
        logger.exception("unhandled error in %s", view.__class__.__name__ if view else 'view', exc_info=exc)
        return Response({'success': False, 'message': GENERIC_SERVER_ERROR}, status=500)
    if resp.status_code >= 500:
        logger.error("server error in %s: %s", view.__class__.__name__ if view else 'view', exc, exc_info=exc)
    else:
        logger.info("request rejected (%s): %s", resp.status_code, exc)
    body = {'success': False, 'message': _first_message(resp.data)}
    if isinstance(resp.data, dict) and 'detail' not in resp.data:
        body['errors'] = resp.data
    elif isinstance(resp.data, list):
        body['errors'] = resp.data
    resp.data = body
    return resp

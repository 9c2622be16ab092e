import logging

from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from clinic.exceptions import WebhookVerificationError
from clinic.services.idp import IdentityProviderError
from clinic.services.webhooks import SIGNATURE_HEADERS, dispatch_event, verify_webhook

logger = logging.getLogger(__name__)


class WebhookThrottle(AnonRateThrottle):
    scope = 'webhook'


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([WebhookThrottle])
def identity_webhook(request):
    """Receive signed ``user.updated`` / ``user.deleted`` events from the identity provider."""
    # Signature covers the raw bytes; read them before anything parses the body.
    body = request.body
    headers = {h: request.headers.get(h) for h in SIGNATURE_HEADERS}
    try:
        event = verify_webhook(headers, body)
        outcome = dispatch_event(event)
    except WebhookVerificationError as e:
        logger.warning("webhook %s rejected: %s", headers.get('svix-id'), e.detail)
        raise
    except IdentityProviderError as e:
        logger.warning("webhook %s carried an unusable payload: %s", headers.get('svix-id'), e)
        return Response({'success': False, 'message': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    logger.info("webhook %s (%s) %s", headers.get('svix-id'), event.get('type'), outcome)
    return Response({'success': True, 'message': 'Webhook processed successfully', 'data': {'outcome': outcome}})

import logging

from django.db import DatabaseError
from django.http import JsonResponse

from clinic.storage import get_storage

logger = logging.getLogger(__name__)


def healthz(request):
    storage = get_storage()
    try:
        ok = storage.ping()
    except DatabaseError as e:
        logger.warning("health check failed: %s", e)
        return JsonResponse({'ok': False, 'error': str(e)}, status=500)
    return JsonResponse({'ok': True, 'db': ok, 'storage': storage.alias})

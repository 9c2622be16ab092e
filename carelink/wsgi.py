"""
WSGI config for the CareLink project.

It exposes the WSGI callable as a module-level variable named
``application`` and opens the record storage handle before serving,
closing it again on SIGTERM/SIGINT.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'carelink.settings')

application = get_wsgi_application()

from clinic.storage import get_storage, install_shutdown_handlers  # noqa: E402

install_shutdown_handlers(get_storage().open())

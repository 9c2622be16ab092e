"""
ASGI config for the CareLink project.

HTTP only. Order matters: configure Django before importing any
Django-dependent modules.
"""
import os

# 1) Configure settings before any Django import
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "carelink.settings")

# 2) Build the Django application (runs django.setup())
from django.core.asgi import get_asgi_application  # noqa: E402

application = get_asgi_application()

# 3) Storage handle lifecycle: open at start, close on shutdown signal
from clinic.storage import get_storage, install_shutdown_handlers  # noqa: E402

install_shutdown_handlers(get_storage().open())

"""
Record storage handle.

The handle wraps one Django database alias and gives it an explicit
lifecycle: it is constructed by :class:`clinic.apps.ClinicConfig`,
opened by the WSGI/ASGI entry point, pinged by ``/healthz`` and closed
when the process receives SIGTERM or SIGINT.
"""
from __future__ import annotations

import logging
import os
import signal
import threading
from typing import Iterable

from django.apps import apps
from django.db import connections

logger = logging.getLogger(__name__)


class Storage:
    def __init__(self, alias: str = 'default'):
        self.alias = alias
        self.is_open = False

    def __repr__(self) -> str:
        return f"Storage(alias={self.alias!r}, open={self.is_open})"

    @property
    def connection(self):
        return connections[self.alias]

    def open(self) -> 'Storage':
        self.connection.ensure_connection()
        self.is_open = True
        logger.info("record storage opened (alias=%s, vendor=%s)", self.alias, self.connection.vendor)
        return self

    def ping(self) -> bool:
        with self.connection.cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        return bool(row and row[0] == 1)

    def close(self) -> None:
        self.connection.close()
        if self.is_open:
            logger.info("record storage closed (alias=%s)", self.alias)
        self.is_open = False


def get_storage() -> Storage:
    return apps.get_app_config('clinic').storage


def install_shutdown_handlers(storage: Storage, signums: Iterable[int] = (signal.SIGTERM, signal.SIGINT)) -> bool:
    """Close ``storage`` when one of ``signums`` arrives, then defer to the previous handler.

    Signal handlers can only be installed from the main thread; elsewhere
    this is a no-op and returns False.
    """
    if threading.current_thread() is not threading.main_thread():
        logger.debug("not in main thread; shutdown handlers for %r skipped", storage)
        return False

    for signum in signums:
        previous = signal.getsignal(signum)

        def _handler(received, frame, previous=previous):
            logger.info("signal %s received, closing record storage", received)
            storage.close()
            if callable(previous):
                previous(received, frame)
            elif previous == signal.SIG_DFL:
                signal.signal(received, signal.SIG_DFL)
                os.kill(os.getpid(), received)

        signal.signal(signum, _handler)
    return True

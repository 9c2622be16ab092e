"""Helpers shared by the record services."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

import bleach
from django.db import DatabaseError, IntegrityError
from django.db.models import QuerySet

from clinic.exceptions import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 200


def clean_text(value: Optional[str]) -> str:
    return bleach.clean((value or '').strip(), strip=True)


def paginate(qs: QuerySet, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> Tuple[list, dict]:
    page = max(1, page)
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    total = qs.count()
    start = (page - 1) * limit
    items = list(qs[start:start + limit])
    pages = (total + limit - 1) // limit
    return items, {'total': total, 'page': page, 'limit': limit, 'pages': pages}


@contextmanager
def persisting(what: str) -> Iterator[None]:
    """Turn storage failures inside the block into :class:`PersistenceError`."""
    try:
        yield
    except IntegrityError as e:
        logger.warning("integrity error while %s: %s", what, e)
        raise PersistenceError() from e
    except DatabaseError as e:
        logger.exception("storage failure while %s", what)
        raise PersistenceError() from e

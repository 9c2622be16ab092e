"""
Medical document metadata and uploads.

Uploaded files go through Django's default storage backend; the record
keeps the storage key and an absolute URL built from
``PUBLIC_API_BASE_URL``. Deleting a document only flags it.
"""
from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from django.conf import settings
from django.core.files.storage import default_storage
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.text import get_valid_filename

from clinic.exceptions import PersistenceError
from clinic.models import MedicalDocument
from clinic.services.audit import log_action
from clinic.services.common import clean_text, paginate, persisting

logger = logging.getLogger(__name__)


def visible():
    return MedicalDocument.objects.filter(is_deleted=False)


def get_document(pk: int) -> MedicalDocument:
    return get_object_or_404(visible(), pk=pk)


def list_documents(*, patient_id=None, uploaded_by=None, document_type=None, category=None,
                   order='desc', page=1, limit=10) -> Tuple[List[MedicalDocument], dict]:
    qs = visible()
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if uploaded_by:
        qs = qs.filter(uploaded_by=uploaded_by)
    if document_type:
        qs = qs.filter(document_type=document_type)
    if category:
        qs = qs.filter(category=category)
    qs = qs.order_by('uploaded_at', 'id') if order == 'asc' else qs.order_by('-uploaded_at', '-id')
    with persisting('listing documents'):
        return paginate(qs, page, limit)


def absolute_url(url: str) -> str:
    if url.startswith(('http://', 'https://')):
        return url
    return f"{settings.PUBLIC_API_BASE_URL}/{url.lstrip('/')}"


def create_document(data: Dict[str, Any], *, actor_id: Optional[str]) -> MedicalDocument:
    data = dict(data)
    data.setdefault('uploaded_by', actor_id)
    data.setdefault('category', MedicalDocument.category_for(data['document_type']))
    with persisting('saving document metadata'):
        doc = MedicalDocument.objects.create(**data)
    log_action(actor_id=actor_id, action='document_created', object_type='medical_document',
               object_id=doc.pk, detail={'patientId': doc.patient_id, 'type': doc.document_type})
    return doc


def store_upload(upload, patient_id: str) -> Tuple[str, str]:
    """Save an uploaded file and return ``(storage_key, absolute_url)``."""
    name = get_valid_filename(upload.name or 'document') or 'document'
    folder = get_valid_filename(patient_id) or 'unknown'
    key = default_storage.save(f"documents/{folder}/{uuid.uuid4().hex}_{name}", upload)
    return key, absolute_url(default_storage.url(key))


def upload_document(upload, data: Dict[str, Any], *, actor_id: Optional[str]) -> MedicalDocument:
    data = dict(data)
    key, url = store_upload(upload, data['patient_id'])
    logger.info("stored upload %s (%s bytes) for %s", key, upload.size, data['patient_id'])
    try:
        return create_document({
            **data,
            'file_name': clean_text(upload.name) or 'document',
            'file_url': url,
            'storage_key': key,
            'file_size': upload.size or 0,
            'file_type': (getattr(upload, 'content_type', '') or '').split(';')[0].strip().lower(),
        }, actor_id=actor_id)
    except PersistenceError:
        # no record points at the file
        default_storage.delete(key)
        logger.info("removed stored upload %s after failed save", key)
        raise


def update_document(doc: MedicalDocument, data: Dict[str, Any], *, actor_id: Optional[str]) -> MedicalDocument:
    data = dict(data)
    if 'document_type' in data and 'category' not in data:
        data['category'] = MedicalDocument.category_for(data['document_type'])
    for field, value in data.items():
        setattr(doc, field, value)
    with persisting('updating document'):
        doc.save()
    log_action(actor_id=actor_id, action='document_updated', object_type='medical_document',
               object_id=doc.pk, detail={'fields': sorted(data)})
    return doc


def soft_delete(doc: MedicalDocument, *, actor_id: Optional[str]) -> None:
    doc.is_deleted = True
    doc.is_active = False
    with persisting('deleting document'):
        doc.save(update_fields=['is_deleted', 'is_active', 'updated_at'])
    log_action(actor_id=actor_id, action='document_deleted', object_type='medical_document', object_id=doc.pk)


def stats_overview(*, patient_id=None, uploaded_by=None) -> Dict[str, Any]:
    qs = visible()
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if uploaded_by:
        qs = qs.filter(uploaded_by=uploaded_by)
    week_ago = timezone.now() - timedelta(days=7)
    with persisting('aggregating documents'):
        totals = qs.aggregate(
            total=Count('id'),
            active=Count('id', filter=Q(is_active=True)),
            recent=Count('id', filter=Q(uploaded_at__gte=week_ago)),
        )
        by_type = list(qs.values('document_type').annotate(count=Count('id')).order_by('-count', 'document_type'))
        by_category = list(qs.values('category').annotate(count=Count('id')).order_by('-count', 'category'))
    return {
        'total_documents': totals['total'],
        'active_documents': totals['active'],
        'inactive_documents': totals['total'] - totals['active'],
        'recent_uploads_7days': totals['recent'],
        'by_document_type': by_type,
        'by_category': by_category,
    }

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from clinic.models import Notification
from clinic.services.audit import log_action
from clinic.services.common import paginate, persisting


def get_notification(pk: int) -> Notification:
    return get_object_or_404(Notification, pk=pk)


def list_notifications(*, recipient_id=None, patient_id=None, notification_type=None, is_read=None,
                       order='desc', page=1, limit=10) -> Tuple[List[Notification], dict]:
    qs = Notification.objects.all()
    if recipient_id:
        qs = qs.filter(recipient_id=recipient_id)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if notification_type:
        qs = qs.filter(notification_type=notification_type)
    if is_read is not None:
        qs = qs.filter(is_read=is_read)
    qs = qs.order_by('sent_at', 'id') if order == 'asc' else qs.order_by('-sent_at', '-id')
    with persisting('listing notifications'):
        return paginate(qs, page, limit)


def create_notification(data: Dict[str, Any], *, actor_id: Optional[str]) -> Notification:
    with persisting('creating notification'):
        n = Notification.objects.create(**data)
    log_action(actor_id=actor_id, action='notification_sent', object_type='notification',
               object_id=n.pk, detail={'recipientId': n.recipient_id, 'type': n.notification_type})
    return n


def mark_read(n: Notification) -> Notification:
    if not n.is_read:
        n.is_read = True
        n.read_at = timezone.now()
        with persisting('marking notification read'):
            n.save(update_fields=['is_read', 'read_at'])
    return n


def mark_all_read(recipient_id: str) -> int:
    with persisting('marking notifications read'):
        return Notification.objects.filter(recipient_id=recipient_id, is_read=False).update(
            is_read=True, read_at=timezone.now()
        )


def unread_count(recipient_id: str) -> int:
    with persisting('counting unread notifications'):
        return Notification.objects.filter(recipient_id=recipient_id, is_read=False).count()


def create_bulk(items: List[Dict[str, Any]], *, actor_id: Optional[str]) -> List[Notification]:
    """Insert every notification or none of them."""
    with persisting('sending bulk notifications'), transaction.atomic():
        created = Notification.objects.bulk_create([Notification(**data) for data in items])
    log_action(actor_id=actor_id, action='notifications_bulk_sent', object_type='notification',
               detail={'count': len(created), 'recipients': sorted({n.recipient_id for n in created})})
    return created


def clear_read(recipient_id: str, *, actor_id: Optional[str]) -> int:
    with persisting('clearing read notifications'):
        deleted, _ = Notification.objects.filter(recipient_id=recipient_id, is_read=True).delete()
    if deleted:
        log_action(actor_id=actor_id, action='notifications_cleared', object_type='notification',
                   detail={'recipientId': recipient_id, 'count': deleted})
    return deleted


def stats_overview(*, recipient_id=None, patient_id=None) -> Dict[str, Any]:
    qs = Notification.objects.all()
    if recipient_id:
        qs = qs.filter(recipient_id=recipient_id)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    with persisting('aggregating notifications'):
        overview = qs.aggregate(
            totalNotifications=Count('id'),
            readNotifications=Count('id', filter=Q(is_read=True)),
            unreadNotifications=Count('id', filter=Q(is_read=False)),
        )
        by_type = list(qs.values('notification_type').annotate(count=Count('id'))
                       .order_by('-count', 'notification_type'))
    return {
        'overview': overview,
        'typeDistribution': [{'type': t['notification_type'], 'count': t['count']} for t in by_type],
    }

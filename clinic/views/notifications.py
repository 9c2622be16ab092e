from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.models import Notification
from clinic.permissions import CareTeamWrites, IsCareTeam, IsOnboarded
from clinic.serializers.notifications import (
    BulkNotificationSerializer,
    NotificationListQuerySerializer,
    NotificationSerializer,
    NotificationStatsQuerySerializer,
)
from clinic.services import notifications as svc


def _serialize(n: Notification) -> dict:
    return {
        'id': n.id,
        'recipient_id': n.recipient_id,
        'patient_id': n.patient_id,
        'notification_type': n.notification_type,
        'title': n.title,
        'body': n.body,
        'data': n.data,
        'is_read': n.is_read,
        'sent_at': n.sent_at.isoformat() if n.sent_at else None,
        'read_at': n.read_at.isoformat() if n.read_at else None,
    }


@api_view(['GET', 'POST'])
@permission_classes([CareTeamWrites])
def notifications(request):
    if request.method == 'GET':
        q = NotificationListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        items, pagination = svc.list_notifications(**q.validated_data)
        return Response({'success': True, 'count': len(items), 'pagination': pagination,
                         'data': [_serialize(n) for n in items]})
    s = NotificationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    n = svc.create_notification(s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Notification created successfully', 'data': _serialize(n)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsOnboarded])
def notification_detail(request, pk: int):
    return Response({'success': True, 'data': _serialize(svc.get_notification(pk))})


@api_view(['PATCH', 'POST'])
@permission_classes([IsOnboarded])
def mark_read(request, pk: int):
    n = svc.mark_read(svc.get_notification(pk))
    return Response({'success': True, 'message': 'Notification marked as read', 'data': _serialize(n)})


@api_view(['GET'])
@permission_classes([IsOnboarded])
def notifications_for_recipient(request, recipient_id: str):
    items, pagination = svc.list_notifications(recipient_id=recipient_id, page=1, limit=200)
    return Response({'success': True, 'count': len(items), 'pagination': pagination,
                     'data': [_serialize(n) for n in items]})


@api_view(['GET'])
@permission_classes([IsOnboarded])
def unread_count(request, recipient_id: str):
    return Response({'success': True, 'data': {'unreadCount': svc.unread_count(recipient_id)}})


@api_view(['PATCH', 'POST'])
@permission_classes([IsOnboarded])
def mark_all_read(request, recipient_id: str):
    modified = svc.mark_all_read(recipient_id)
    return Response({'success': True, 'message': f"{modified} notifications marked as read",
                     'data': {'modifiedCount': modified}})


@api_view(['POST'])
@permission_classes([IsCareTeam])
def bulk_notifications(request):
    s = BulkNotificationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    created = svc.create_bulk(s.validated_data['notifications'], actor_id=request.user.external_id)
    return Response({'success': True, 'message': f"{len(created)} notifications sent successfully",
                     'data': {'count': len(created), 'notifications': [_serialize(n) for n in created]}},
                    status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsOnboarded])
def clear_read(request, recipient_id: str):
    deleted = svc.clear_read(recipient_id, actor_id=request.user.external_id)
    return Response({'success': True, 'message': f"{deleted} notifications deleted",
                     'data': {'deletedCount': deleted}})


@api_view(['GET'])
@permission_classes([IsOnboarded])
def notification_stats(request):
    q = NotificationStatsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'success': True, 'data': svc.stats_overview(**q.validated_data)})

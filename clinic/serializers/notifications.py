from rest_framework import serializers

from clinic.models import Notification
from clinic.services.common import clean_text

from .fields import IdentifierField, PageQuerySerializer

TYPE_CHOICES = [t for t, _ in Notification.TYPE_CHOICES]


class NotificationSerializer(serializers.Serializer):
    recipient_id = IdentifierField()
    patient_id = IdentifierField()
    notification_type = serializers.ChoiceField(choices=TYPE_CHOICES)
    title = serializers.CharField(max_length=200)
    body = serializers.CharField(max_length=2000)
    data = serializers.DictField(required=False)

    def validate_title(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Title is required')
        return v

    def validate_body(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Body is required')
        return v


class NotificationListQuerySerializer(PageQuerySerializer):
    recipient_id = IdentifierField(required=False)
    patient_id = IdentifierField(required=False)
    notification_type = serializers.ChoiceField(choices=TYPE_CHOICES, required=False)
    is_read = serializers.BooleanField(required=False, allow_null=True, default=None)


class BulkNotificationSerializer(serializers.Serializer):
    notifications = serializers.ListField(
        child=NotificationSerializer(), allow_empty=False, max_length=500,
        error_messages={
            'not_a_list': 'Please provide an array of notifications',
            'empty': 'Please provide an array of notifications',
        },
    )


class NotificationStatsQuerySerializer(serializers.Serializer):
    recipient_id = IdentifierField(required=False)
    patient_id = IdentifierField(required=False)

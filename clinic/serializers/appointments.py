from rest_framework import serializers

from clinic.models import Appointment
from clinic.services.common import clean_text

from .fields import IdentifierField, PageQuerySerializer

TYPE_CHOICES = [t for t, _ in Appointment.TYPE_CHOICES]
STATUS_CHOICES = [s for s, _ in Appointment.STATUS_CHOICES]


def _check_window(attrs, instance=None):
    start = attrs.get('start_time', getattr(instance, 'start_time', None))
    end = attrs.get('end_time', getattr(instance, 'end_time', None))
    if start and end and end <= start:
        raise serializers.ValidationError({'end_time': 'End time must be after start time'})


class AppointmentSerializer(serializers.Serializer):
    patient_id = IdentifierField()
    doctor_id = IdentifierField()
    appointment_type = serializers.ChoiceField(choices=TYPE_CHOICES)
    status = serializers.ChoiceField(choices=STATUS_CHOICES, required=False)
    scheduled_date = serializers.DateField(required=False, allow_null=True)
    start_time = serializers.DateTimeField(required=False, allow_null=True)
    end_time = serializers.DateTimeField(required=False, allow_null=True)
    duration_minutes = serializers.IntegerField(min_value=5, max_value=480, required=False, allow_null=True)
    preferred_dates = serializers.ListField(child=serializers.DateField(), required=False)
    preferred_times = serializers.ListField(
        child=serializers.ChoiceField(choices=Appointment.PREFERRED_TIME_CHOICES), required=False
    )
    reason = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    is_recurring = serializers.BooleanField(required=False)
    recurrence_pattern = serializers.ChoiceField(choices=[p for p, _ in Appointment.RECURRENCE_CHOICES], required=False)
    recurrence_end_date = serializers.DateField(required=False, allow_null=True)

    def validate_status(self, v):
        # updates move status only through the approve/reject/cancel/confirm/complete endpoints
        if self.instance is not None and v != self.instance.status:
            raise serializers.ValidationError(
                f"Cannot change status from {self.instance.status} to {v} here; use the appointment actions"
            )
        return v

    def validate_preferred_dates(self, v):
        return [d.isoformat() for d in v]

    def validate_reason(self, v):
        return clean_text(v)

    def validate_location(self, v):
        return clean_text(v)

    def validate_notes(self, v):
        return clean_text(v)

    def validate(self, attrs):
        _check_window(attrs, self.instance)
        return attrs


class AppointmentRequestSerializer(serializers.Serializer):
    patient_id = IdentifierField()
    doctor_id = IdentifierField()
    appointment_type = serializers.ChoiceField(choices=TYPE_CHOICES, required=False, default='consultation')
    preferred_dates = serializers.ListField(child=serializers.DateField(), min_length=1)
    preferred_times = serializers.ListField(
        child=serializers.ChoiceField(choices=Appointment.PREFERRED_TIME_CHOICES), required=False, default=list
    )
    reason = serializers.CharField(max_length=1000)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True, default='')

    def validate_preferred_dates(self, v):
        return [d.isoformat() for d in v]

    def validate_reason(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Reason is required')
        return v

    def validate_notes(self, v):
        return clean_text(v)


class AppointmentApproveSerializer(serializers.Serializer):
    scheduled_date = serializers.DateField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)

    def validate(self, attrs):
        _check_window(attrs)
        minutes = int((attrs['end_time'] - attrs['start_time']).total_seconds() // 60)
        if not 5 <= minutes <= 480:
            raise serializers.ValidationError('Duration must be between 5 minutes and 8 hours')
        attrs['duration_minutes'] = minutes
        for key in ('location', 'notes'):
            if key in attrs:
                attrs[key] = clean_text(attrs[key])
        return attrs


class AppointmentRejectSerializer(serializers.Serializer):
    rejection_reason = serializers.CharField(min_length=10, max_length=500)

    def validate_rejection_reason(self, v):
        v = clean_text(v)
        if len(v) < 10:
            raise serializers.ValidationError('Rejection reason must be at least 10 characters')
        return v


class AppointmentListQuerySerializer(PageQuerySerializer):
    patient_id = IdentifierField(required=False)
    doctor_id = IdentifierField(required=False)
    status = serializers.ChoiceField(choices=STATUS_CHOICES, required=False)
    appointment_type = serializers.ChoiceField(choices=TYPE_CHOICES, required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    sortBy = serializers.ChoiceField(choices=['start_time', 'created_at', 'scheduled_date'], required=False, default='created_at')


class AvailabilityQuerySerializer(serializers.Serializer):
    date = serializers.DateField()


class AppointmentStatsQuerySerializer(serializers.Serializer):
    patient_id = IdentifierField(required=False)
    doctor_id = IdentifierField(required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)


class ReminderSerializer(serializers.Serializer):
    reminder_type = serializers.ChoiceField(choices=['24h', '1h'])

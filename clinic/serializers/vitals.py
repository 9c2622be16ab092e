from rest_framework import serializers

from clinic.models import PhysicalVital
from clinic.services.common import clean_text

from .fields import IdentifierField, PageQuerySerializer

MEASUREMENTS = tuple(PhysicalVital.RANGES)


def _measurement(name):
    lo, hi = PhysicalVital.RANGES[name]
    return serializers.FloatField(min_value=lo, max_value=hi, required=False, allow_null=True)


class VitalSerializer(serializers.Serializer):
    patient_id = IdentifierField()
    recorded_by = IdentifierField(required=False, allow_null=True)
    recorded_at = serializers.DateTimeField(required=False)
    systolic_bp = _measurement('systolic_bp')
    diastolic_bp = _measurement('diastolic_bp')
    heart_rate = _measurement('heart_rate')
    blood_sugar = _measurement('blood_sugar')
    respiratory_rate = _measurement('respiratory_rate')
    temperature = _measurement('temperature')
    spo2 = _measurement('spo2')
    weight = _measurement('weight')
    hb = _measurement('hb')
    bmi = _measurement('bmi')
    measurement_method = serializers.ChoiceField(choices=[m for m, _ in PhysicalVital.METHOD_CHOICES], required=False)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)

    def validate_notes(self, v):
        return clean_text(v)

    def validate(self, attrs):
        if not self.partial and all(attrs.get(m) is None for m in MEASUREMENTS):
            raise serializers.ValidationError('At least one measurement is required')
        return attrs


class VitalListQuerySerializer(PageQuerySerializer):
    patient_id = IdentifierField(required=False)
    recorded_by = IdentifierField(required=False)
    measurement_method = serializers.ChoiceField(choices=[m for m, _ in PhysicalVital.METHOD_CHOICES], required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)


class VitalStatsQuerySerializer(serializers.Serializer):
    days = serializers.IntegerField(min_value=1, max_value=3650, required=False, default=30)

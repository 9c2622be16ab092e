from rest_framework import serializers

from clinic.services.common import clean_text

from .fields import IdentifierField, PageQuerySerializer


class PrescriptionSerializer(serializers.Serializer):
    patient_id = IdentifierField()
    doctor_id = IdentifierField()
    medication_name = serializers.CharField(max_length=200)
    dosage = serializers.CharField(max_length=100)
    frequency = serializers.CharField(max_length=100)
    duration_days = serializers.IntegerField(min_value=1, max_value=365)
    instructions = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    qr_code_url = serializers.CharField(max_length=500, required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)

    def validate_medication_name(self, v):
        return clean_text(v)

    def validate_dosage(self, v):
        return clean_text(v)

    def validate_frequency(self, v):
        return clean_text(v)

    def validate_instructions(self, v):
        return clean_text(v)


class PrescriptionListQuerySerializer(PageQuerySerializer):
    patient_id = IdentifierField(required=False)
    doctor_id = IdentifierField(required=False)
    is_active = serializers.BooleanField(required=False, allow_null=True, default=None)


class PrescriptionStatsQuerySerializer(serializers.Serializer):
    patient_id = IdentifierField(required=False)
    doctor_id = IdentifierField(required=False)

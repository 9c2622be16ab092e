import re

from django.utils import timezone
from rest_framework import serializers

from clinic.models import PatientRecord
from clinic.services.common import clean_text

from .fields import IdentifierField, PageQuerySerializer

PHONE_RE = re.compile(r'^[\d\s\-\+\(\)]+$')
MAX_AGE_YEARS = 150


def _entries(values):
    seen, out = set(), []
    for v in values:
        v = clean_text(v)
        if v and v.casefold() not in seen:
            seen.add(v.casefold())
            out.append(v)
    return out


class PatientRecordSerializer(serializers.Serializer):
    patient_id = IdentifierField(required=False, allow_null=True)
    primary_doctor_id = IdentifierField(required=False, allow_null=True)
    name = serializers.CharField(max_length=100)
    date_of_birth = serializers.DateField()
    gender = serializers.ChoiceField(choices=PatientRecord.GENDER_CHOICES,
                                     error_messages={'invalid_choice': 'Please select a valid gender option'})
    blood_group = serializers.ChoiceField(choices=PatientRecord.BLOOD_GROUPS, required=False, allow_blank=True,
                                          error_messages={'invalid_choice': 'Please select a valid blood group'})
    emergency_contact_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    emergency_contact_phone = serializers.RegexField(
        PHONE_RE, max_length=32, error_messages={'invalid': 'Please provide a valid phone number'}
    )
    address = serializers.CharField(max_length=500, required=False, allow_blank=True)
    allergies = serializers.ListField(child=serializers.CharField(max_length=200), required=False)
    chronic_conditions = serializers.ListField(child=serializers.CharField(max_length=200), required=False)
    past_surgeries = serializers.ListField(child=serializers.CharField(max_length=200), required=False)
    family_history = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)

    def validate_patient_id(self, v):
        if v is None:
            return v
        taken = PatientRecord.objects.filter(patient_id=v)
        if self.instance is not None:
            taken = taken.exclude(pk=self.instance.pk)
        if taken.exists():
            raise serializers.ValidationError('A patient record already exists for this account')
        return v

    def validate_name(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Name is required')
        return v

    def validate_date_of_birth(self, v):
        today = timezone.localdate()
        if v >= today:
            raise serializers.ValidationError('Date of birth must be in the past')
        if today.year - v.year > MAX_AGE_YEARS:
            raise serializers.ValidationError('Please provide a valid date of birth')
        return v

    def validate_emergency_contact_name(self, v):
        return clean_text(v)

    def validate_address(self, v):
        return clean_text(v)

    def validate_family_history(self, v):
        return clean_text(v)

    def validate_allergies(self, v):
        return _entries(v)

    def validate_chronic_conditions(self, v):
        return _entries(v)

    def validate_past_surgeries(self, v):
        return _entries(v)


class _EntrySerializer(serializers.Serializer):
    """One history entry posted under ``entry_key``."""
    entry_key = ''

    def validate(self, attrs):
        entry = clean_text(attrs[self.entry_key])
        if not entry:
            raise serializers.ValidationError({self.entry_key: ['This field may not be blank.']})
        return {'entry': entry}


class AllergySerializer(_EntrySerializer):
    entry_key = 'allergy'
    allergy = serializers.CharField(max_length=200)


class ConditionSerializer(_EntrySerializer):
    entry_key = 'condition'
    condition = serializers.CharField(max_length=200)


class SurgerySerializer(_EntrySerializer):
    entry_key = 'surgery'
    surgery = serializers.CharField(max_length=200)


class FamilyHistorySerializer(serializers.Serializer):
    family_history = serializers.CharField(max_length=2000, allow_blank=True)

    def validate_family_history(self, v):
        return clean_text(v)


class PatientListQuerySerializer(PageQuerySerializer):
    search = serializers.CharField(max_length=100, required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False, allow_null=True, default=None)
    sortBy = serializers.ChoiceField(choices=['created_at', 'name', 'date_of_birth', 'updated_at'],
                                     required=False, default='created_at')


class DoctorPatientsQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=200, required=False, default=100)

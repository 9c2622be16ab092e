from django.utils import timezone
from rest_framework import serializers

from clinic.models import Gender, Role
from clinic.services.common import clean_text

from .fields import RequiredTogetherMixin


class ProfileCompletionSerializer(RequiredTogetherMixin, serializers.Serializer):
    required_fields = ('phone', 'role', 'dateOfBirth', 'gender')
    required_message = 'All fields are required'

    phone = serializers.CharField(max_length=32)
    role = serializers.ChoiceField(choices=Role.choices)
    dateOfBirth = serializers.DateField(input_formats=['iso-8601', '%Y-%m-%dT%H:%M:%S.%fZ', '%Y-%m-%dT%H:%M:%SZ'])
    gender = serializers.ChoiceField(choices=Gender.choices)

    def validate_phone(self, v):
        v = clean_text(v)
        if len(v) < 5:
            raise serializers.ValidationError('Enter a valid phone number')
        return v

    def validate_dateOfBirth(self, v):
        if v > timezone.localdate():
            raise serializers.ValidationError('Date of birth cannot be in the future')
        return v

    def validate_role(self, v):
        return Role(v)

    def validate_gender(self, v):
        return Gender(v)

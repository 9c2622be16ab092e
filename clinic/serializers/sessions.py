from rest_framework import serializers

from .fields import IdentifierField, RequiredTogetherMixin


class LiveSessionCreateSerializer(RequiredTogetherMixin, serializers.Serializer):
    required_fields = ('sessionName', 'sessionUrl', 'doctorId')
    required_message = 'Patient name, session URL, and doctor ID are required'

    sessionName = serializers.CharField(max_length=255)
    sessionUrl = serializers.CharField(max_length=500)
    doctorId = IdentifierField()
    doctorName = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    doctorEmail = serializers.CharField(max_length=254, required=False, allow_blank=True, default='')


class DoctorSessionsQuerySerializer(RequiredTogetherMixin, serializers.Serializer):
    required_fields = ('doctorId',)
    required_message = 'Doctor ID is required'

    doctorId = IdentifierField()


class PatientSessionsQuerySerializer(RequiredTogetherMixin, serializers.Serializer):
    required_fields = ('patientId',)
    required_message = 'Patient ID is required'

    patientId = IdentifierField()

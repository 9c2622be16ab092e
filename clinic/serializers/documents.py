from django.conf import settings
from rest_framework import serializers

from clinic.models import MedicalDocument
from clinic.services.common import clean_text

from .fields import IdentifierField, PageQuerySerializer


def _max_bytes() -> int:
    return settings.UPLOAD_MAX_MB * 1024 * 1024


def check_file_type(content_type: str) -> str:
    content_type = (content_type or '').split(';')[0].strip().lower()
    if content_type not in settings.ALLOWED_UPLOAD_TYPES:
        raise serializers.ValidationError(f"Unsupported file type: {content_type or 'unknown'}")
    return content_type


def check_file_size(size: int) -> int:
    if size > _max_bytes():
        raise serializers.ValidationError(f"File too large (max {settings.UPLOAD_MAX_MB}MB)")
    return size


class _DocumentFieldsMixin(serializers.Serializer):
    document_type = serializers.ChoiceField(choices=MedicalDocument.DOCUMENT_TYPES)
    category = serializers.ChoiceField(choices=MedicalDocument.CATEGORIES, required=False)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)

    def validate_description(self, v):
        return clean_text(v)

    def validate_tags(self, v):
        return [t for t in (clean_text(x) for x in v) if t]


class DocumentSerializer(_DocumentFieldsMixin):
    """Metadata for a file that is already stored elsewhere."""
    patient_id = IdentifierField()
    uploaded_by = IdentifierField(required=False)
    file_name = serializers.CharField(max_length=255)
    file_url = serializers.CharField(max_length=500)
    file_size = serializers.IntegerField(min_value=0)
    file_type = serializers.CharField(max_length=120)

    def validate_file_type(self, v):
        return check_file_type(v)

    def validate_file_size(self, v):
        return check_file_size(v)

    def validate_file_name(self, v):
        return clean_text(v)


class DocumentUploadSerializer(_DocumentFieldsMixin):
    file = serializers.FileField()
    patient_id = IdentifierField()
    uploaded_by = IdentifierField(required=False)

    def validate_file(self, f):
        check_file_type(getattr(f, 'content_type', ''))
        check_file_size(f.size or 0)
        return f


class DocumentUpdateSerializer(serializers.Serializer):
    document_type = serializers.ChoiceField(choices=MedicalDocument.DOCUMENT_TYPES, required=False)
    category = serializers.ChoiceField(choices=MedicalDocument.CATEGORIES, required=False)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    is_active = serializers.BooleanField(required=False)

    def validate_description(self, v):
        return clean_text(v)

    def validate_tags(self, v):
        return [t for t in (clean_text(x) for x in v) if t]


class DocumentListQuerySerializer(PageQuerySerializer):
    patient_id = IdentifierField(required=False)
    uploaded_by = IdentifierField(required=False)
    document_type = serializers.ChoiceField(choices=MedicalDocument.DOCUMENT_TYPES, required=False)
    category = serializers.ChoiceField(choices=MedicalDocument.CATEGORIES, required=False)


class DocumentStatsQuerySerializer(serializers.Serializer):
    patient_id = IdentifierField(required=False)
    uploaded_by = IdentifierField(required=False)

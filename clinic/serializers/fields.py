from collections.abc import Mapping

from rest_framework import serializers
from rest_framework.settings import api_settings


class IdentifierField(serializers.Field):
    """Identity provider id: a non-blank string, or null/absent where the field allows it.

    Numbers, objects, lists and blank strings are rejected.
    """
    default_error_messages = {
        'invalid': 'Must be an identity provider id string.',
        'blank': 'This field may not be blank.',
        'max_length': 'Ensure this field has no more than {max_length} characters.',
    }

    def __init__(self, max_length=128, **kwargs):
        self.max_length = max_length
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        if not isinstance(data, str):
            self.fail('invalid')
        data = data.strip()
        if not data:
            self.fail('blank')
        if len(data) > self.max_length:
            self.fail('max_length', max_length=self.max_length)
        return data

    def to_representation(self, value):
        return value


def is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class RequiredTogetherMixin:
    """Report one plain message when any of ``required_fields`` is missing or blank."""
    required_fields: tuple = ()
    required_message = 'All fields are required'

    def to_internal_value(self, data):
        if isinstance(data, Mapping) and any(is_missing(data.get(f)) for f in self.required_fields):
            raise serializers.ValidationError({api_settings.NON_FIELD_ERRORS_KEY: [self.required_message]})
        return super().to_internal_value(data)


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=200, required=False, default=10)
    order = serializers.ChoiceField(choices=['asc', 'desc'], required=False, default='desc')

from rest_framework import serializers


class FormConfigRequestMixin:
    """Requests name their form either inline (config) or by a registered id (formId)"""

    def validate(self, attrs):
        if not attrs.get('config') and not attrs.get('formId'):
            raise serializers.ValidationError('Either config or formId is required')
        return attrs


class FormValidationRequestSerializer(FormConfigRequestMixin, serializers.Serializer):
    """Serializer for whole-form validation requests"""
    config = serializers.DictField(required=False)
    formId = serializers.CharField(required=False)
    data = serializers.DictField(required=False, default=dict)
    resolveAsync = serializers.BooleanField(required=False, default=False)


class FieldValidationRequestSerializer(serializers.Serializer):
    """Serializer for individual field validation requests"""
    field = serializers.DictField()
    value = serializers.JSONField(required=False, allow_null=True)
    formData = serializers.DictField(required=False, default=dict)

    def validate_field(self, value):
        if not value.get('name'):
            raise serializers.ValidationError('Field name is required')
        return value


class ConfigValidationRequestSerializer(serializers.Serializer):
    """Serializer for form config checks"""
    config = serializers.JSONField()


class DependencyRequestSerializer(FormConfigRequestMixin, serializers.Serializer):
    config = serializers.DictField(required=False)
    formId = serializers.CharField(required=False)


class VisibilityRequestSerializer(FormConfigRequestMixin, serializers.Serializer):
    """Serializer for visibility / wizard position requests"""
    config = serializers.DictField(required=False)
    formId = serializers.CharField(required=False)
    data = serializers.DictField(required=False, default=dict)
    currentPage = serializers.IntegerField(required=False, default=0)


class FieldErrorSerializer(serializers.Serializer):
    field = serializers.CharField()
    message = serializers.CharField(allow_blank=True)
    rule = serializers.CharField(allow_null=True)


class ValidationResultSerializer(serializers.Serializer):
    """Serializer for validation results"""
    valid = serializers.BooleanField()
    errors = FieldErrorSerializer(many=True)


class ConfigErrorSerializer(serializers.Serializer):
    path = serializers.CharField(allow_blank=True)
    message = serializers.CharField()


class ConfigValidationResultSerializer(serializers.Serializer):
    valid = serializers.BooleanField()
    errors = ConfigErrorSerializer(many=True)


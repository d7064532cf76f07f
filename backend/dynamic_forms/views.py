from rest_framework import viewsets, status, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema
from asgiref.sync import async_to_sync
import logging

from .conf import get_forms_settings
from .serializers import (
    ConfigValidationRequestSerializer, ConfigValidationResultSerializer, DependencyRequestSerializer,
    FieldValidationRequestSerializer, FormValidationRequestSerializer, ValidationResultSerializer,
    VisibilityRequestSerializer,
)
from .validation.async_coordinator import AsyncValidationCoordinator
from .validation.config_loader import validate_config
from .validation.dependencies import build_dependencies
from .validation.engine import FormValidationEngine
from .validation.errors import ExternalErrorStore, merge_results
from .validation.registry import default_registries, default_resolver
from .validation.types import FormSpec, UNDEFINED
from .validation.visibility import visible_fields, visible_pages, visible_sections

logger = logging.getLogger(__name__)


class FormValidationViewSet(viewsets.ViewSet):
    """
    Server runtime for form configs
    Stateless: every request carries the config (or a registered formId) and the data
    """
    permission_classes = [permissions.AllowAny]

    def _resolve_spec(self, validated):
        """Inline config wins over formId; returns None when the formId is unknown"""
        if validated.get('config'):
            return FormSpec.from_dict(validated['config'])
        return default_resolver().resolve(validated['formId'])

    def _unknown_form(self, validated):
        return Response(
            {'error': f"Unknown form '{validated.get('formId')}'"},
            status=status.HTTP_404_NOT_FOUND
        )

    def _engine(self):
        return FormValidationEngine(default_registries(), default_resolver())

    @extend_schema(
        summary="Validate form data",
        request=FormValidationRequestSerializer,
        responses=ValidationResultSerializer,
    )
    @action(detail=False, methods=['POST'], url_path='validate')
    def validate(self, request):
        """Validate a whole form; async validators also run when resolveAsync is set"""
        serializer = FormValidationRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        validated = serializer.validated_data
        spec = self._resolve_spec(validated)
        if spec is None:
            return self._unknown_form(validated)

        try:
            data = validated['data']
            result = self._engine().validate_form(spec, data)

            if validated['resolveAsync']:
                store = ExternalErrorStore()
                coordinator = AsyncValidationCoordinator(
                    spec,
                    registries=default_registries(),
                    error_store=store,
                    data_provider=lambda: data,
                    timeout=get_forms_settings()['ASYNC_TIMEOUT'],
                )
                async_to_sync(coordinator.validate_all_async)()
                result = merge_results(result, store)

            return Response(result.to_dict())

        except Exception as e:
            logger.error(f"Form validation error: {e}", exc_info=True)
            return Response(
                {'error': f'Validation failed: {str(e)}'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

    @extend_schema(
        summary="Validate a single field value",
        request=FieldValidationRequestSerializer,
        responses=ValidationResultSerializer,
    )
    @action(detail=False, methods=['POST'], url_path='validate-field')
    def validate_field(self, request):
        """Validate individual field value"""
        serializer = FieldValidationRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        validated = serializer.validated_data
        try:
            result = self._engine().validate_field_value(
                validated['field'],
                validated.get('value', UNDEFINED),
                validated['formData'],
            )
            return Response(result.to_dict())

        except Exception as e:
            logger.error(f"Field validation error: {e}", exc_info=True)
            return Response(
                {'error': f'Field validation failed: {str(e)}'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

    @extend_schema(
        summary="Check a form config",
        request=ConfigValidationRequestSerializer,
        responses=ConfigValidationResultSerializer,
    )
    @action(detail=False, methods=['POST'], url_path='validate-config')
    def validate_config(self, request):
        """Report every structural problem in a form config"""
        serializer = ConfigValidationRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        result = validate_config(serializer.validated_data['config'])
        return Response(result.to_dict())

    @extend_schema(summary="Dependency graph of a form config", request=DependencyRequestSerializer)
    @action(detail=False, methods=['POST'], url_path='dependencies')
    def dependencies(self, request):
        serializer = DependencyRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        spec = self._resolve_spec(serializer.validated_data)
        if spec is None:
            return self._unknown_form(serializer.validated_data)
        return Response(build_dependencies(spec).to_dict())

    @extend_schema(summary="Visible fields, sections and wizard pages", request=VisibilityRequestSerializer)
    @action(detail=False, methods=['POST'], url_path='visibility')
    def visibility(self, request):
        """Evaluate visibility against the given data and clamp the wizard page index"""
        serializer = VisibilityRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        validated = serializer.validated_data
        spec = self._resolve_spec(validated)
        if spec is None:
            return self._unknown_form(validated)

        data = validated['data']
        pages = visible_pages(spec, data)
        current_page = max(0, min(validated['currentPage'], len(pages) - 1)) if pages else 0

        return Response({
            'fields': [f.name for f in visible_fields(spec, data)],
            'sections': [s.id for s in visible_sections(spec, data)],
            'pages': [p.id for p in pages],
            'currentPage': current_page,
        })

    @extend_schema(summary="Registered validators, fetch handlers and forms")
    @action(detail=False, methods=['GET'], url_path='validators')
    def validators(self, request):
        """List what is registered with the process-wide registries"""
        summary = default_registries().summary()
        summary['forms'] = sorted(default_resolver().form_ids())
        return Response(summary)

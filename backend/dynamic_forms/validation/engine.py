"""
Form validation engine
Walks a FormSpec's structure (scalar fields, table rows, datagrid cells, composite
phone/daterange values and embedded formref forms) and applies the rule evaluator
to every leaf value. The same code serves the interactive session and the server
request handler.
"""
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Union

from .conditions import ConditionalRuleEvaluator
from .registry import ValidationRegistries
from .rules import RuleEvaluator, is_empty
from .types import (
    ColumnSpec, FieldSpec, FieldValidationError, FormSpec, RuleSpec, UNDEFINED, ValidationResult,
)

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_MESSAGE = 'This field is required'

FormResolver = Callable[[str], Optional[FormSpec]]


def coerce_spec(spec: Union[FormSpec, Dict[str, Any], None]) -> FormSpec:
    """Accept either a FormSpec or its JSON shape"""
    if isinstance(spec, FormSpec):
        return spec
    return FormSpec.from_dict(spec if isinstance(spec, dict) else {})


def coerce_field(field_spec: Union[FieldSpec, Dict[str, Any], None]) -> Optional[FieldSpec]:
    if isinstance(field_spec, FieldSpec):
        return field_spec
    if isinstance(field_spec, dict):
        return FieldSpec.from_dict(field_spec)
    return None


class FormValidationEngine:
    """
    Structural walker over a FormSpec

    Args:
        registries: Named validator registries consulted by `custom` rules
        form_resolver: Callable mapping a formref formId to its FormSpec (or None)
    """

    def __init__(self, registries: Optional[ValidationRegistries] = None,
                 form_resolver: Optional[FormResolver] = None):
        self.registries = registries or ValidationRegistries()
        self.form_resolver = form_resolver
        self.rules = RuleEvaluator(self.registries)

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def validate_form(self, spec: Union[FormSpec, Dict[str, Any]], data: Dict[str, Any]) -> ValidationResult:
        """
        Validate an entire form against its configuration

        Args:
            spec: The form configuration
            data: The form data to validate

        Returns:
            ValidationResult with a flat list of every leaf error, in field order
        """
        spec = coerce_spec(spec)
        data = data if isinstance(data, dict) else {}
        return ValidationResult.from_errors(self.validate_fields(spec.fields, data))

    def validate_field_value(self, field_spec: Union[FieldSpec, Dict[str, Any]], value: Any,
                             form_data: Optional[Dict[str, Any]] = None) -> ValidationResult:
        """
        Validate a single field value

        Args:
            field_spec: The field configuration
            value: The value to validate
            form_data: Optional full form data for conditions and custom validators

        Returns:
            ValidationResult for the single field
        """
        field_spec = coerce_field(field_spec)
        if field_spec is None:
            logger.warning("validate_field_value called without a usable field configuration")
            return ValidationResult(valid=True)

        form_data = dict(form_data) if isinstance(form_data, dict) else {}
        form_data[field_spec.name] = value
        return ValidationResult.from_errors(self.validate_field(field_spec, form_data))

    def validate_fields(self, fields: List[FieldSpec], data: Dict[str, Any]) -> List[FieldValidationError]:
        errors: List[FieldValidationError] = []
        for form_field in fields:
            errors.extend(self.validate_field(form_field, data))
        return errors

    def validate_field(self, field_spec: FieldSpec, form_data: Dict[str, Any],
                       path: Optional[str] = None, allow_formref: bool = True) -> List[FieldValidationError]:
        """
        Validate one field of any type, reading its value from form_data

        Archived and non-input fields produce no errors. Any unexpected failure is
        logged and yields no errors for that field.
        """
        if field_spec.archived:
            return []

        path = path or field_spec.name
        value = form_data.get(field_spec.name, UNDEFINED)

        try:
            if field_spec.type == 'table':
                return self._validate_table(field_spec, value, form_data, path)
            elif field_spec.type == 'datagrid':
                return self._validate_datagrid(field_spec, value, form_data, path)
            elif field_spec.type == 'phone':
                return self._validate_phone(field_spec, value, form_data, path)
            elif field_spec.type == 'daterange':
                return self._validate_daterange(field_spec, value, form_data, path)
            elif field_spec.type == 'formref':
                if not allow_formref:
                    return []
                return self._validate_formref(field_spec, value, path)
            elif field_spec.type == 'info':
                return []
            return self._validate_rules(field_spec, value, field_spec.validations, form_data, path)
        except Exception as e:
            logger.error(f"Field validation error on {path!r}: {e}", exc_info=True)
            return []

    # =========================================================================
    # LEAF EVALUATION
    # =========================================================================

    def _validate_rules(self, field_spec: FieldSpec, value: Any, rules: List[RuleSpec],
                        form_data: Dict[str, Any], path: str,
                        row_data: Optional[Dict[str, Any]] = None) -> List[FieldValidationError]:
        errors = []
        for rule in rules:
            if not self.rules.evaluate(value, rule, field_spec, form_data, row_data):
                errors.append(FieldValidationError(field=path, message=rule.message, rule=rule.type))
        return errors

    def _column_field(self, field_spec: FieldSpec, column: ColumnSpec) -> FieldSpec:
        """The column presented as a field to custom validators"""
        return replace(field_spec, name=column.name, type=column.type, validations=column.validations)

    # =========================================================================
    # STRUCTURAL TYPES
    # =========================================================================

    def _validate_table(self, field_spec: FieldSpec, value: Any, form_data: Dict[str, Any],
                        path: str) -> List[FieldValidationError]:
        config = field_spec.table_config
        if config is None or not isinstance(value, list):
            return []

        errors = []
        for row_index, row in enumerate(value):
            if not isinstance(row, dict):
                continue

            # An all-empty row is not a partial submission
            if all(is_empty(row.get(column.name)) for column in config.columns):
                continue

            for column in config.columns:
                if not column.validations:
                    continue
                errors.extend(self._validate_rules(
                    self._column_field(field_spec, column),
                    row.get(column.name, UNDEFINED),
                    column.validations,
                    form_data,
                    f"{path}[{row_index}].{column.name}",
                    row_data=row,
                ))
        return errors

    def _validate_datagrid(self, field_spec: FieldSpec, value: Any, form_data: Dict[str, Any],
                           path: str) -> List[FieldValidationError]:
        config = field_spec.datagrid_config
        if config is None or not isinstance(value, dict):
            return []

        errors = []
        for row_label in config.row_labels:
            row = value.get(row_label.id)
            if not row or not isinstance(row, dict):
                continue

            for column in config.columns:
                if column.computed or not column.validations:
                    continue
                errors.extend(self._validate_rules(
                    self._column_field(field_spec, column),
                    row.get(column.name, UNDEFINED),
                    column.validations,
                    form_data,
                    f"{path}.{row_label.id}.{column.name}",
                    row_data=row,
                ))
        return errors

    def _validate_phone(self, field_spec: FieldSpec, value: Any, form_data: Dict[str, Any],
                        path: str) -> List[FieldValidationError]:
        """Phone values are {countryCode, number}; every rule runs against the number alone"""
        number = value.get('number', UNDEFINED) if isinstance(value, dict) else UNDEFINED

        errors = []
        for rule in field_spec.validations:
            if self.rules.evaluate(number, rule, field_spec, form_data):
                continue
            message = rule.message or (DEFAULT_REQUIRED_MESSAGE if rule.type == 'required' else '')
            errors.append(FieldValidationError(field=path, message=message, rule=rule.type))
        return errors

    def _validate_daterange(self, field_spec: FieldSpec, value: Any, form_data: Dict[str, Any],
                            path: str) -> List[FieldValidationError]:
        """Daterange values are {fromDate, toDate}; only `required` applies"""
        required = field_spec.required_rule
        if required is None:
            return []

        if not ConditionalRuleEvaluator.evaluate_condition(required.condition, form_data):
            return []

        value = value if isinstance(value, dict) else {}
        to_date_optional = bool(field_spec.daterange_config and field_spec.daterange_config.to_date_optional)
        from_empty = not value.get('fromDate') or is_empty(value.get('fromDate'))
        to_empty = not value.get('toDate') or is_empty(value.get('toDate'))

        if from_empty or (to_empty and not to_date_optional):
            return [FieldValidationError(
                field=path,
                message=required.message or DEFAULT_REQUIRED_MESSAGE,
                rule='required',
            )]
        return []

    def _validate_formref(self, field_spec: FieldSpec, value: Any, path: str) -> List[FieldValidationError]:
        """
        Validate the fields of an embedded form

        The embedded fields are read from this field's value (a mapping keyed by the
        prefixed names); conditions inside the embedded form see the embedded data
        under the unprefixed names. Nested formref and info fields are skipped.
        """
        embedded_spec = self.resolve_formref(field_spec)
        if embedded_spec is None:
            return []

        prefix = field_spec.formref_config.field_prefix
        group = value if isinstance(value, dict) else {}
        embedded_fields = [f for f in embedded_spec.fields if f.type not in ('info', 'formref')]
        embedded_data = {
            f.name: group[prefix + f.name]
            for f in embedded_fields
            if prefix + f.name in group
        }

        errors = []
        for embedded in embedded_fields:
            errors.extend(self.validate_field(
                embedded,
                embedded_data,
                path=f"{path}.{prefix}{embedded.name}",
                allow_formref=False,
            ))
        return errors

    def resolve_formref(self, field_spec: FieldSpec) -> Optional[FormSpec]:
        config = field_spec.formref_config
        if config is None or not config.form_id:
            logger.warning(f"FormRef field {field_spec.name!r} has no formId")
            return None
        if self.form_resolver is None:
            logger.warning(f"FormRef field {field_spec.name!r}: no form resolver configured")
            return None
        spec = self.form_resolver(config.form_id)
        if spec is None:
            logger.warning(f"FormRef: could not load form with id {config.form_id!r}")
        return spec


def validate_form(spec: Union[FormSpec, Dict[str, Any]], data: Dict[str, Any],
                  registries: Optional[ValidationRegistries] = None,
                  form_resolver: Optional[FormResolver] = None) -> ValidationResult:
    """
    Validate an entire form against its configuration

    Example:
        registries = ValidationRegistries()
        registries.validators.register('australianPhone', lambda value, *args: value.startswith('+61'))
        result = validate_form(spec, data, registries)
        if not result.valid:
            logger.info(f"Validation errors: {result.errors}")
    """
    return FormValidationEngine(registries, form_resolver).validate_form(spec, data)


def validate_field_value(field_spec: Union[FieldSpec, Dict[str, Any]], value: Any,
                         form_data: Optional[Dict[str, Any]] = None,
                         registries: Optional[ValidationRegistries] = None) -> ValidationResult:
    """Validate a single field value"""
    return FormValidationEngine(registries).validate_field_value(field_spec, value, form_data)

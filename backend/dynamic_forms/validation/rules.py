"""
Rule evaluation
Checks one value against one RuleSpec; validation failures are returned, never raised
"""
import logging
import math
import re
from typing import Any, Dict, Optional

from .conditions import ConditionalRuleEvaluator
from .patterns import EMAIL_PATTERN, compile_user_pattern, to_text
from .registry import ValidationRegistries
from .types import FieldSpec, RuleSpec, UNDEFINED

logger = logging.getLogger(__name__)


def is_empty(value: Any) -> bool:
    """Empty for rule purposes: null, absent, whitespace-only string or empty list"""
    if value is None or value is UNDEFINED:
        return True
    if isinstance(value, str) and value.strip() == '':
        return True
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return True
    return False


# Longest numeric prefix a browser's parseFloat accepts
_NUMERIC_PREFIX = re.compile(r'[+-]?(?:Infinity|(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)')


def to_number(value: Any) -> Optional[float]:
    """
    Numeric coercion used by min/max; returns None for non-numeric input

    Strings are read like parseFloat: leading whitespace is skipped and the longest
    decimal prefix is used, so '12abc' is 12 and '1_000' is 1.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _NUMERIC_PREFIX.match(value.lstrip())
        if match is None:
            return None
        number = float(match.group())
    else:
        return None
    if math.isnan(number):
        return None
    return number


def js_length(value: str) -> int:
    """String length in UTF-16 code units, as a browser counts it"""
    return len(value.encode('utf-16-le', 'surrogatepass')) // 2


class RuleEvaluator:
    """
    Evaluates validation rules

    Every rule except `required` skips empty values; configuration defects
    (malformed pattern, unregistered custom validator) pass with a warning.
    """

    def __init__(self, registries: Optional[ValidationRegistries] = None):
        self.registries = registries or ValidationRegistries()

    def evaluate(self, value: Any, rule: RuleSpec, field_spec: Optional[FieldSpec],
                 form_data: Dict[str, Any], row_data: Optional[Dict[str, Any]] = None) -> bool:
        """
        Validate a single value against a rule

        Args:
            value: The value to validate
            rule: The validation rule
            field_spec: The field (or column-as-field) the value belongs to
            form_data: The full form data
            row_data: Row data for table/datagrid context (condition evaluation only)

        Returns:
            bool: True when the rule passes or does not apply
        """
        if rule.condition is not None:
            if not ConditionalRuleEvaluator.evaluate_condition(rule.condition, form_data, row_data):
                return True

        rule_type = rule.type

        if rule_type == 'required':
            return not is_empty(value)
        elif rule_type == 'email':
            return self._validate_email(value)
        elif rule_type == 'minLength':
            return self._validate_length(value, rule, minimum=True)
        elif rule_type == 'maxLength':
            return self._validate_length(value, rule, minimum=False)
        elif rule_type == 'min':
            return self._validate_range(value, rule, minimum=True)
        elif rule_type == 'max':
            return self._validate_range(value, rule, minimum=False)
        elif rule_type == 'pattern':
            return self._validate_pattern(value, rule)
        elif rule_type == 'custom':
            return self._validate_custom(value, rule, field_spec, form_data)
        else:
            logger.debug(f"Unsupported validation rule type: {rule_type!r}")
            return True

    def _validate_email(self, value: Any) -> bool:
        if is_empty(value):
            return True
        return bool(EMAIL_PATTERN.compiled.match(to_text(value)))

    def _validate_length(self, value: Any, rule: RuleSpec, minimum: bool) -> bool:
        if is_empty(value) or not isinstance(value, str):
            return True
        limit = to_number(rule.value)
        if limit is None:
            return True
        if minimum:
            return js_length(value) >= limit
        return js_length(value) <= limit

    def _validate_range(self, value: Any, rule: RuleSpec, minimum: bool) -> bool:
        if is_empty(value):
            return True
        number = to_number(value)
        limit = to_number(rule.value)
        if number is None or limit is None:
            return True
        if minimum:
            return number >= limit
        return number <= limit

    def _validate_pattern(self, value: Any, rule: RuleSpec) -> bool:
        if is_empty(value):
            return True
        compiled = compile_user_pattern(rule.value)
        if compiled is None:
            return True
        return compiled.search(to_text(value)) is not None

    def _validate_custom(self, value: Any, rule: RuleSpec, field_spec: Optional[FieldSpec],
                         form_data: Dict[str, Any]) -> bool:
        if is_empty(value):
            return True

        name = rule.custom_validator_name
        if not name:
            logger.warning("Custom rule without customValidatorName; skipping")
            return True

        validator = self.registries.validators.get(name)
        if validator is None:
            logger.warning(f"Custom validator {name!r} not registered")
            return True

        try:
            return bool(validator(value, rule.custom_validator_params, field_spec, form_data))
        except Exception as e:
            logger.warning(f"Custom validator {name!r} raised {e.__class__.__name__}: {e}; treating as passing",
                           exc_info=True)
            return True


def evaluate_rule(value: Any, rule: RuleSpec, field_spec: Optional[FieldSpec], form_data: Dict[str, Any],
                  row_data: Optional[Dict[str, Any]] = None,
                  registries: Optional[ValidationRegistries] = None) -> bool:
    """Convenience wrapper around RuleEvaluator.evaluate"""
    return RuleEvaluator(registries).evaluate(value, rule, field_spec, form_data, row_data)

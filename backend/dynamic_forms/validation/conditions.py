"""
Conditional Rule Evaluator
Evaluates condition predicates that gate rule applicability and field/section/page visibility
"""
import logging
from typing import Any, Dict, Optional

from .types import ConditionSpec, UNDEFINED

logger = logging.getLogger(__name__)


def is_blank(value: Any) -> bool:
    """Emptiness as seen by the condition language: null, absent or empty string (arrays never count)"""
    return value is None or value is UNDEFINED or value == ''


def strict_equals(left: Any, right: Any) -> bool:
    """
    Equality without type coercion

    Booleans never equal numbers, and containers only equal themselves, so a
    condition compares the same way no matter which runtime evaluates it.
    """
    if left is UNDEFINED or right is UNDEFINED:
        return left is right
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if isinstance(left, (list, dict)) or isinstance(right, (list, dict)):
        return left is right
    if isinstance(left, str) != isinstance(right, str):
        return False
    return left == right


class ConditionalRuleEvaluator:
    """Evaluates a single condition against form data (and optionally the current row)"""

    @staticmethod
    def resolve_value(condition: ConditionSpec, form_data: Dict[str, Any],
                      row_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Look up the value a condition refers to

        Args:
            condition: Condition with a plain, row-relative or $form.-prefixed field
            form_data: The full form data
            row_data: Row data when evaluating inside a table/datagrid row

        Returns:
            The referenced value, or UNDEFINED when the key is absent
        """
        if condition.is_form_reference:
            source = form_data
        elif row_data is not None:
            source = row_data
        else:
            source = form_data

        if not isinstance(source, dict):
            return UNDEFINED
        return source.get(condition.referenced_name, UNDEFINED)

    @staticmethod
    def evaluate_condition(condition: Optional[ConditionSpec], form_data: Dict[str, Any],
                           row_data: Optional[Dict[str, Any]] = None) -> bool:
        """
        Evaluate a single condition

        Returns:
            bool: Whether the condition is met. A missing condition is always met and an
            unknown operator fails open.
        """
        if condition is None:
            return True

        field_value = ConditionalRuleEvaluator.resolve_value(condition, form_data or {}, row_data)
        operator = condition.operator

        if operator == 'equals':
            return strict_equals(field_value, condition.value)
        elif operator == 'notEquals':
            return not strict_equals(field_value, condition.value)
        elif operator == 'isEmpty':
            return is_blank(field_value)
        elif operator == 'isNotEmpty':
            return not is_blank(field_value)
        else:
            logger.warning(f"Unknown condition operator {operator!r} on field {condition.field!r}; treating as met")
            return True


def evaluate_condition(condition: Optional[ConditionSpec], form_data: Dict[str, Any],
                       row_data: Optional[Dict[str, Any]] = None) -> bool:
    """Convenience wrapper around ConditionalRuleEvaluator.evaluate_condition"""
    return ConditionalRuleEvaluator.evaluate_condition(condition, form_data, row_data)

"""
Tests for the condition evaluator
"""
import pytest
from unittest.mock import patch

from dynamic_forms.validation.conditions import ConditionalRuleEvaluator, evaluate_condition, strict_equals
from dynamic_forms.validation.types import ConditionSpec, UNDEFINED


def condition(field, operator, value=UNDEFINED):
    return ConditionSpec(field=field, operator=operator, value=value)


class TestConditionOperators:
    """Operator semantics against plain form data"""

    def test_missing_condition_is_met(self):
        assert evaluate_condition(None, {}) is True

    def test_equals_is_strict(self):
        """Booleans never equal numbers and strings never equal numbers"""
        assert evaluate_condition(condition('flag', 'equals', True), {'flag': True}) is True
        assert evaluate_condition(condition('flag', 'equals', True), {'flag': 1}) is False
        assert evaluate_condition(condition('count', 'equals', 1), {'count': '1'}) is False
        assert evaluate_condition(condition('count', 'equals', 1), {'count': 1.0}) is True

    def test_not_equals_on_absent_field(self):
        assert evaluate_condition(condition('status', 'notEquals', 'active'), {}) is True

    def test_equals_null_does_not_match_absent(self):
        assert evaluate_condition(condition('status', 'equals', None), {}) is False
        assert evaluate_condition(condition('status', 'equals', None), {'status': None}) is True

    @pytest.mark.parametrize('data', [{}, {'x': None}, {'x': ''}])
    def test_is_empty_treats_absent_null_and_blank_alike(self, data):
        assert evaluate_condition(condition('x', 'isEmpty'), data) is True
        assert evaluate_condition(condition('x', 'isNotEmpty'), data) is False

    @pytest.mark.parametrize('value', [[], 0, False, ' '])
    def test_is_empty_false_for_other_values(self, value):
        """Arrays, zero, false and whitespace are not empty for conditions"""
        assert evaluate_condition(condition('x', 'isEmpty'), {'x': value}) is False

    def test_unknown_operator_fails_open(self):
        with patch('dynamic_forms.validation.conditions.logger') as mock_logger:
            assert evaluate_condition(condition('x', 'greaterThan', 3), {'x': 1}) is True
        mock_logger.warning.assert_called_once()


class TestConditionContext:
    """Row-relative and $form. references"""

    def test_row_lookup_takes_precedence(self):
        form_data = {'current': False}
        row = {'current': True}
        assert evaluate_condition(condition('current', 'equals', True), form_data, row) is True

    def test_row_lookup_does_not_fall_back_to_form(self):
        assert evaluate_condition(condition('current', 'isEmpty'), {'current': True}, {}) is True

    def test_form_prefix_reads_form_data_inside_row(self):
        form_data = {'country': 'AU'}
        row = {'country': 'NZ'}
        assert evaluate_condition(condition('$form.country', 'equals', 'AU'), form_data, row) is True

    def test_form_prefix_without_row(self):
        assert evaluate_condition(condition('$form.country', 'equals', 'AU'), {'country': 'AU'}) is True

    def test_resolve_value_returns_undefined_for_missing_key(self):
        assert ConditionalRuleEvaluator.resolve_value(condition('missing', 'isEmpty'), {}) is UNDEFINED


class TestStrictEquals:

    def test_containers_compare_by_identity(self):
        items = [1, 2]
        assert strict_equals(items, items) is True
        assert strict_equals([1, 2], [1, 2]) is False

    def test_undefined_only_equals_itself(self):
        assert strict_equals(UNDEFINED, UNDEFINED) is True
        assert strict_equals(UNDEFINED, None) is False

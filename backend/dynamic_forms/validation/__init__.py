"""
Form Validation Engine
Condition and rule evaluation, the structural walker, dependency graphs, async
validation and wizard visibility. Nothing in this package imports Django.
"""
from .async_coordinator import AsyncFieldStatus, AsyncValidationCoordinator, AsyncValidationResult
from .conditions import ConditionalRuleEvaluator, evaluate_condition
from .config_loader import ConfigValidationError, ConfigValidationResult, load_config, parse_config, validate_config
from .dependencies import DependencyGraph, build_dependencies
from .engine import FormValidationEngine, validate_field_value, validate_form
from .errors import ExternalErrorStore, merge_results
from .registry import (
    AsyncValidatorRegistry, AutocompleteFetchRegistry, FormSpecResolver, ValidationRegistries,
    ValidatorRegistry, default_registries, default_resolver,
)
from .rules import RuleEvaluator, evaluate_rule
from .types import (
    ConditionSpec, FieldSpec, FieldValidationError, FormSpec, RuleSpec, SectionSpec, UNDEFINED,
    ValidationResult, WizardPage, WizardSpec,
)
from .visibility import (
    WizardNavigator, build_submission_payload, is_archived_field_visible, is_field_visible,
    is_page_visible, is_section_visible, visible_fields, visible_pages, visible_sections,
)

__all__ = [
    # Data model
    'UNDEFINED',
    'ConditionSpec',
    'RuleSpec',
    'FieldSpec',
    'SectionSpec',
    'WizardPage',
    'WizardSpec',
    'FormSpec',
    'FieldValidationError',
    'ValidationResult',

    # Evaluation
    'ConditionalRuleEvaluator',
    'evaluate_condition',
    'RuleEvaluator',
    'evaluate_rule',
    'FormValidationEngine',
    'validate_form',
    'validate_field_value',

    # Dependencies
    'DependencyGraph',
    'build_dependencies',

    # Async validation
    'AsyncFieldStatus',
    'AsyncValidationCoordinator',
    'AsyncValidationResult',
    'ExternalErrorStore',
    'merge_results',

    # Visibility and wizard
    'is_field_visible',
    'is_section_visible',
    'is_page_visible',
    'is_archived_field_visible',
    'visible_fields',
    'visible_sections',
    'visible_pages',
    'build_submission_payload',
    'WizardNavigator',

    # Registries
    'ValidatorRegistry',
    'AsyncValidatorRegistry',
    'AutocompleteFetchRegistry',
    'ValidationRegistries',
    'FormSpecResolver',
    'default_registries',
    'default_resolver',

    # Config loading
    'ConfigValidationError',
    'ConfigValidationResult',
    'validate_config',
    'parse_config',
    'load_config',
]

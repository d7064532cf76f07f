"""
Form configuration loader
Checks the JSON shape of a FormSpec before it is handed to the engine. Problems are
collected as (path, message) records; nothing here raises on bad input.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from .types import ASYNC_TRIGGERS, CONDITION_OPERATORS, FIELD_TYPES, FormSpec, RULE_TYPES, TABLE_ROW_MODES

logger = logging.getLogger(__name__)

VALUE_RULE_TYPES = ['minLength', 'maxLength', 'min', 'max']
OPTION_FIELD_TYPES = ['select', 'radio', 'checkbox']


@dataclass
class ConfigValidationError:
    path: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {'path': self.path, 'message': self.message}


@dataclass
class ConfigValidationResult:
    valid: bool
    errors: List[ConfigValidationError] = field(default_factory=list)
    config: Optional[FormSpec] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'valid': self.valid,
            'errors': [error.to_dict() for error in self.errors],
        }


class ConfigValidator:
    """Collects configuration errors for one FormSpec JSON object"""

    def __init__(self):
        self.errors: List[ConfigValidationError] = []

    def add(self, path: str, message: str) -> None:
        self.errors.append(ConfigValidationError(path=path, message=message))

    # =========================================================================
    # RULES AND CONDITIONS
    # =========================================================================

    def check_condition(self, condition: Any, path: str) -> None:
        if not isinstance(condition, dict):
            self.add(path, 'Condition must be an object')
            return
        if not condition.get('field') or not isinstance(condition.get('field'), str):
            self.add(f"{path}.field", 'Condition field is required')
        operator = condition.get('operator')
        if not operator:
            self.add(f"{path}.operator", 'Condition operator is required')
        elif operator not in CONDITION_OPERATORS:
            self.add(f"{path}.operator",
                     f'Invalid condition operator "{operator}". Valid operators: {", ".join(CONDITION_OPERATORS)}')

    def check_rule(self, rule: Any, path: str) -> None:
        if not isinstance(rule, dict):
            self.add(path, 'Validation rule must be an object')
            return

        rule_type = rule.get('type')
        if not rule_type:
            self.add(f"{path}.type", 'Validation rule type is required')
        elif rule_type not in RULE_TYPES:
            self.add(f"{path}.type", f'Invalid validation type "{rule_type}". Valid types: {", ".join(RULE_TYPES)}')

        if not rule.get('message') or not isinstance(rule.get('message'), str):
            self.add(f"{path}.message", 'Validation rule message is required')

        if rule_type in VALUE_RULE_TYPES and 'value' not in rule:
            self.add(f"{path}.value", f'Validation type "{rule_type}" requires a value')

        if rule_type == 'pattern' and not rule.get('value'):
            self.add(f"{path}.value", 'Pattern validation requires a regex value')

        if rule_type == 'custom' and not rule.get('customValidatorName'):
            self.add(f"{path}.customValidatorName", 'Custom validation requires customValidatorName')

        if 'condition' in rule and rule['condition'] is not None:
            self.check_condition(rule['condition'], f"{path}.condition")

    def check_rules(self, rules: Any, path: str) -> None:
        if rules is None:
            return
        if not isinstance(rules, list):
            self.add(path, 'Validations must be an array')
            return
        for index, rule in enumerate(rules):
            self.check_rule(rule, f"{path}[{index}]")

    # =========================================================================
    # STRUCTURAL CONFIGS
    # =========================================================================

    def check_columns(self, columns: Any, path: str, kind: str) -> None:
        if not isinstance(columns, list) or len(columns) == 0:
            self.add(path, f'{kind} must have at least one column')
            return
        for index, column in enumerate(columns):
            column_path = f"{path}[{index}]"
            if not isinstance(column, dict):
                self.add(column_path, 'Column must be an object')
                continue
            if not column.get('name'):
                self.add(f"{column_path}.name", 'Column name is required')
            if not column.get('label'):
                self.add(f"{column_path}.label", 'Column label is required')
            self.check_rules(column.get('validations'), f"{column_path}.validations")

    def check_table_config(self, config: Any, path: str) -> None:
        if not isinstance(config, dict):
            self.add(path, 'Table config must be an object')
            return
        self.check_columns(config.get('columns'), f"{path}.columns", 'Table')
        if config.get('rowMode') not in TABLE_ROW_MODES:
            self.add(f"{path}.rowMode", 'Table rowMode must be "fixed" or "dynamic"')

    def check_datagrid_config(self, config: Any, path: str) -> None:
        if not isinstance(config, dict):
            self.add(path, 'DataGrid config must be an object')
            return
        self.check_columns(config.get('columns'), f"{path}.columns", 'DataGrid')

        row_labels = config.get('rowLabels')
        if not isinstance(row_labels, list) or len(row_labels) == 0:
            self.add(f"{path}.rowLabels", 'DataGrid must have at least one row label')
            return
        for index, row in enumerate(row_labels):
            row_path = f"{path}.rowLabels[{index}]"
            if not isinstance(row, dict):
                self.add(row_path, 'Row label must be an object')
                continue
            if not row.get('id'):
                self.add(f"{row_path}.id", 'Row label id is required')
            if not row.get('label'):
                self.add(f"{row_path}.label", 'Row label is required')

    def check_async_validation(self, config: Any, path: str) -> None:
        if not isinstance(config, dict):
            self.add(path, 'asyncValidation must be an object')
            return
        if not config.get('validatorName'):
            self.add(f"{path}.validatorName", 'Async validation requires validatorName')
        trigger = config.get('trigger')
        if trigger is not None and trigger not in ASYNC_TRIGGERS:
            self.add(f"{path}.trigger", 'Async validation trigger must be "blur" or "change"')

    # =========================================================================
    # FIELDS, SECTIONS, WIZARD
    # =========================================================================

    def check_field(self, form_field: Any, path: str) -> None:
        if not isinstance(form_field, dict):
            self.add(path, 'Field must be an object')
            return

        if not form_field.get('name') or not isinstance(form_field.get('name'), str):
            self.add(f"{path}.name", 'Field name is required')
        if not form_field.get('label') or not isinstance(form_field.get('label'), str):
            self.add(f"{path}.label", 'Field label is required')

        field_type = form_field.get('type')
        if not field_type:
            self.add(f"{path}.type", 'Field type is required')
        elif field_type not in FIELD_TYPES:
            self.add(f"{path}.type", f'Invalid field type "{field_type}". Valid types: {", ".join(FIELD_TYPES)}')

        if field_type in OPTION_FIELD_TYPES and 'options' in form_field:
            if not isinstance(form_field['options'], list):
                self.add(f"{path}.options", 'Options must be an array')

        if field_type == 'table':
            if not form_field.get('tableConfig'):
                self.add(f"{path}.tableConfig", 'Table field requires tableConfig')
            else:
                self.check_table_config(form_field['tableConfig'], f"{path}.tableConfig")

        if field_type == 'datagrid':
            if not form_field.get('datagridConfig'):
                self.add(f"{path}.datagridConfig", 'DataGrid field requires datagridConfig')
            else:
                self.check_datagrid_config(form_field['datagridConfig'], f"{path}.datagridConfig")

        if field_type == 'info' and not form_field.get('content'):
            self.add(f"{path}.content", 'Info field requires content')

        if field_type == 'formref':
            formref_config = form_field.get('formrefConfig')
            if not isinstance(formref_config, dict) or not formref_config.get('formId'):
                self.add(f"{path}.formrefConfig.formId", 'FormRef field requires formrefConfig.formId')

        section_id = form_field.get('sectionId')
        if section_id is not None and not isinstance(section_id, str):
            self.add(f"{path}.sectionId", 'Field sectionId must be a string')

        self.check_rules(form_field.get('validations'), f"{path}.validations")

        if form_field.get('condition') is not None:
            self.check_condition(form_field['condition'], f"{path}.condition")

        if form_field.get('asyncValidation') is not None:
            self.check_async_validation(form_field['asyncValidation'], f"{path}.asyncValidation")

    def check_sections(self, sections: Any, fields: List[Any]) -> Set[str]:
        section_ids: Set[str] = set()
        if not isinstance(sections, list):
            self.add('sections', 'Sections must be an array')
            return section_ids

        for index, section in enumerate(sections):
            path = f"sections[{index}]"
            if not isinstance(section, dict):
                self.add(path, 'Section must be an object')
                continue
            section_id = section.get('id')
            if not section_id:
                self.add(f"{path}.id", 'Section id is required')
            elif not isinstance(section_id, str):
                self.add(f"{path}.id", 'Section id must be a string')
            elif section_id in section_ids:
                self.add(f"{path}.id", f'Duplicate section id "{section_id}"')
            else:
                section_ids.add(section_id)
            if not section.get('title'):
                self.add(f"{path}.title", 'Section title is required')
            if section.get('condition') is not None:
                self.check_condition(section['condition'], f"{path}.condition")

        for index, form_field in enumerate(fields):
            if isinstance(form_field, dict) and isinstance(form_field.get('sectionId'), str) \
                    and form_field['sectionId'] not in section_ids:
                self.add(f"fields[{index}].sectionId",
                         f'Field references non-existent section "{form_field["sectionId"]}"')
        return section_ids

    def check_wizard(self, wizard: Any, section_ids: Set[str]) -> None:
        if not isinstance(wizard, dict):
            self.add('wizard', 'Wizard must be an object')
            return

        pages = wizard.get('pages')
        if not isinstance(pages, list) or len(pages) == 0:
            self.add('wizard.pages', 'Wizard must have at least one page')
            return

        page_ids: Set[str] = set()
        for index, page in enumerate(pages):
            path = f"wizard.pages[{index}]"
            if not isinstance(page, dict):
                self.add(path, 'Wizard page must be an object')
                continue
            page_id = page.get('id')
            if not page_id:
                self.add(f"{path}.id", 'Wizard page id is required')
            elif not isinstance(page_id, str):
                self.add(f"{path}.id", 'Wizard page id must be a string')
            elif page_id in page_ids:
                self.add(f"{path}.id", f'Duplicate wizard page id "{page_id}"')
            else:
                page_ids.add(page_id)
            if not page.get('title'):
                self.add(f"{path}.title", 'Wizard page title is required')

            page_sections = page.get('sectionIds')
            if not isinstance(page_sections, list):
                self.add(f"{path}.sectionIds", 'Wizard page sectionIds must be an array')
            else:
                for section_id in page_sections:
                    if not isinstance(section_id, str) or section_id not in section_ids:
                        self.add(f"{path}.sectionIds", f'Wizard page references non-existent section "{section_id}"')

            if page.get('condition') is not None:
                self.check_condition(page['condition'], f"{path}.condition")

    def check(self, config: Any) -> ConfigValidationResult:
        if not isinstance(config, dict):
            return ConfigValidationResult(
                valid=False,
                errors=[ConfigValidationError(path='', message='Config must be an object')],
            )

        if not config.get('id') or not isinstance(config.get('id'), str):
            self.add('id', 'Form id is required')

        fields = config.get('fields')
        if not isinstance(fields, list):
            self.add('fields', 'Fields must be an array')
            fields = []
        else:
            names: Set[str] = set()
            for index, form_field in enumerate(fields):
                self.check_field(form_field, f"fields[{index}]")
                name = form_field.get('name') if isinstance(form_field, dict) else None
                if name and isinstance(name, str):
                    if name in names:
                        self.add(f"fields[{index}].name", f'Duplicate field name "{name}"')
                    names.add(name)

        section_ids: Set[str] = set()
        if config.get('sections') is not None:
            section_ids = self.check_sections(config['sections'], fields)
        else:
            for index, form_field in enumerate(fields):
                if isinstance(form_field, dict) and isinstance(form_field.get('sectionId'), str):
                    self.add(f"fields[{index}].sectionId",
                             f'Field references non-existent section "{form_field["sectionId"]}"')

        if config.get('wizard') is not None:
            self.check_wizard(config['wizard'], section_ids)

        valid = len(self.errors) == 0
        return ConfigValidationResult(
            valid=valid,
            errors=list(self.errors),
            config=FormSpec.from_dict(config) if valid else None,
        )


def validate_config(config: Any) -> ConfigValidationResult:
    """
    Validate a form config object

    Returns:
        ConfigValidationResult carrying the parsed FormSpec when valid
    """
    return ConfigValidator().check(config)


def parse_config(json_text: Union[str, bytes]) -> ConfigValidationResult:
    """Parse and validate a JSON string as a FormSpec"""
    try:
        parsed = json.loads(json_text)
    except (ValueError, TypeError) as e:
        return ConfigValidationResult(
            valid=False,
            errors=[ConfigValidationError(path='', message=f"Invalid JSON: {e}")],
        )
    return validate_config(parsed)


def load_config(file_path: Union[str, Path]) -> ConfigValidationResult:
    """
    Load and validate a form config from a file

    Example:
        result = load_config('forms/contact-form.json')
        if not result.valid:
            logger.error(f"Config errors: {result.errors}")
    """
    try:
        content = Path(file_path).read_text(encoding='utf-8')
    except OSError as e:
        return ConfigValidationResult(
            valid=False,
            errors=[ConfigValidationError(path='', message=f"Failed to read file: {e}")],
        )
    return parse_config(content)

"""
Form configuration data model
Plain dataclasses mirroring the JSON wire format shared by the interactive and server runtimes
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class _Undefined:
    """Marker for a key that is absent from a data context (distinct from an explicit null)"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return 'UNDEFINED'

    def __bool__(self):
        return False


UNDEFINED = _Undefined()

FORM_PREFIX = '$form.'

FIELD_TYPES = [
    'text', 'email', 'number', 'textarea', 'select', 'checkbox', 'radio', 'date',
    'daterange', 'table', 'info', 'datagrid', 'phone', 'formref', 'fileupload', 'autocomplete',
]

RULE_TYPES = ['required', 'email', 'minLength', 'maxLength', 'min', 'max', 'pattern', 'custom']

CONDITION_OPERATORS = ['equals', 'notEquals', 'isEmpty', 'isNotEmpty']

ASYNC_TRIGGERS = ['blur', 'change']

TABLE_ROW_MODES = ['fixed', 'dynamic']

DEFAULT_DEBOUNCE_MS = 300


def _extra(data: Dict[str, Any], known: List[str]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if key not in known}


def _as_dict(data: Any) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}


def _as_list(data: Any) -> List[Any]:
    return data if isinstance(data, list) else []


def _rules_from(data: Any) -> List['RuleSpec']:
    return [RuleSpec.from_dict(rule) for rule in _as_list(data) if isinstance(rule, dict)]


@dataclass
class ConditionSpec:
    """Predicate gating a rule's applicability or a field/section/page's visibility"""
    field: str
    operator: str
    value: Any = UNDEFINED
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_form_reference(self) -> bool:
        return self.field.startswith(FORM_PREFIX)

    @property
    def referenced_name(self) -> str:
        """Field name with any $form. prefix stripped"""
        if self.is_form_reference:
            return self.field[len(FORM_PREFIX):]
        return self.field

    @classmethod
    def from_dict(cls, data: Any) -> Optional['ConditionSpec']:
        if not isinstance(data, dict):
            return None
        return cls(
            field=str(data.get('field') or ''),
            operator=str(data.get('operator') or ''),
            value=data.get('value', UNDEFINED),
            extra=_extra(data, ['field', 'operator', 'value']),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out['field'] = self.field
        out['operator'] = self.operator
        if self.value is not UNDEFINED:
            out['value'] = self.value
        return out


@dataclass
class RuleSpec:
    """One validation rule attached to a field or a table/datagrid column"""
    type: str
    message: str = ''
    value: Any = UNDEFINED
    custom_validator_name: Optional[str] = None
    custom_validator_params: Optional[Dict[str, Any]] = None
    condition: Optional[ConditionSpec] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    KEYS = ['type', 'message', 'value', 'customValidatorName', 'customValidatorParams', 'condition']

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RuleSpec':
        return cls(
            type=str(data.get('type') or ''),
            message=data.get('message') or '',
            value=data.get('value', UNDEFINED),
            custom_validator_name=data.get('customValidatorName'),
            custom_validator_params=data.get('customValidatorParams'),
            condition=ConditionSpec.from_dict(data.get('condition')),
            extra=_extra(data, cls.KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out['type'] = self.type
        out['message'] = self.message
        if self.value is not UNDEFINED:
            out['value'] = self.value
        if self.custom_validator_name is not None:
            out['customValidatorName'] = self.custom_validator_name
        if self.custom_validator_params is not None:
            out['customValidatorParams'] = self.custom_validator_params
        if self.condition is not None:
            out['condition'] = self.condition.to_dict()
        return out


@dataclass
class ColumnSpec:
    """Column of a table or datagrid field"""
    name: str
    label: str = ''
    type: str = 'text'
    validations: List[RuleSpec] = field(default_factory=list)
    computed: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    KEYS = ['name', 'label', 'type', 'validations', 'computed']

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ColumnSpec':
        return cls(
            name=str(data.get('name') or ''),
            label=data.get('label') or '',
            type=data.get('type') or 'text',
            validations=_rules_from(data.get('validations')),
            computed=bool(data.get('computed', False)),
            extra=_extra(data, cls.KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out.update({'name': self.name, 'label': self.label, 'type': self.type})
        if self.validations:
            out['validations'] = [rule.to_dict() for rule in self.validations]
        if self.computed:
            out['computed'] = True
        return out


@dataclass
class TableConfig:
    columns: List[ColumnSpec] = field(default_factory=list)
    row_mode: str = 'dynamic'
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Optional['TableConfig']:
        if not isinstance(data, dict):
            return None
        return cls(
            columns=[ColumnSpec.from_dict(c) for c in _as_list(data.get('columns')) if isinstance(c, dict)],
            row_mode=data.get('rowMode') or 'dynamic',
            extra=_extra(data, ['columns', 'rowMode']),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out['columns'] = [column.to_dict() for column in self.columns]
        out['rowMode'] = self.row_mode
        return out


@dataclass
class RowLabel:
    id: str
    label: str = ''


@dataclass
class DataGridConfig:
    columns: List[ColumnSpec] = field(default_factory=list)
    row_labels: List[RowLabel] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Optional['DataGridConfig']:
        if not isinstance(data, dict):
            return None
        return cls(
            columns=[ColumnSpec.from_dict(c) for c in _as_list(data.get('columns')) if isinstance(c, dict)],
            row_labels=[
                RowLabel(id=str(row.get('id') or ''), label=row.get('label') or '')
                for row in _as_list(data.get('rowLabels')) if isinstance(row, dict)
            ],
            extra=_extra(data, ['columns', 'rowLabels']),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out['columns'] = [column.to_dict() for column in self.columns]
        out['rowLabels'] = [{'id': row.id, 'label': row.label} for row in self.row_labels]
        return out


@dataclass
class DateRangeConfig:
    to_date_optional: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Optional['DateRangeConfig']:
        if not isinstance(data, dict):
            return None
        return cls(
            to_date_optional=bool(data.get('toDateOptional', False)),
            extra=_extra(data, ['toDateOptional']),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        if self.to_date_optional:
            out['toDateOptional'] = True
        return out


@dataclass
class FormRefConfig:
    form_id: str
    show_sections: bool = False
    field_prefix: str = ''
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Optional['FormRefConfig']:
        if not isinstance(data, dict):
            return None
        return cls(
            form_id=str(data.get('formId') or ''),
            show_sections=bool(data.get('showSections', False)),
            field_prefix=data.get('fieldPrefix') or '',
            extra=_extra(data, ['formId', 'showSections', 'fieldPrefix']),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out['formId'] = self.form_id
        if self.show_sections:
            out['showSections'] = True
        if self.field_prefix:
            out['fieldPrefix'] = self.field_prefix
        return out


@dataclass
class AsyncValidationConfig:
    """Named asynchronous validator attached to a field"""
    validator_name: str
    trigger: str = 'blur'
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    params: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Optional['AsyncValidationConfig']:
        if not isinstance(data, dict):
            return None
        debounce = data.get('debounceMs')
        if not isinstance(debounce, (int, float)) or isinstance(debounce, bool) or debounce < 0:
            debounce = DEFAULT_DEBOUNCE_MS
        return cls(
            validator_name=str(data.get('validatorName') or ''),
            trigger=data.get('trigger') if data.get('trigger') in ASYNC_TRIGGERS else 'blur',
            debounce_ms=debounce,
            params=data.get('params'),
            extra=_extra(data, ['validatorName', 'trigger', 'debounceMs', 'params']),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out.update({
            'validatorName': self.validator_name,
            'trigger': self.trigger,
            'debounceMs': self.debounce_ms,
        })
        if self.params is not None:
            out['params'] = self.params
        return out


@dataclass
class FieldSpec:
    """A single form field; `name` is the addressing key used throughout the engine"""
    name: str
    type: str = 'text'
    label: str = ''
    validations: List[RuleSpec] = field(default_factory=list)
    async_validation: Optional[AsyncValidationConfig] = None
    condition: Optional[ConditionSpec] = None
    archived: bool = False
    section_id: Optional[str] = None
    table_config: Optional[TableConfig] = None
    datagrid_config: Optional[DataGridConfig] = None
    daterange_config: Optional[DateRangeConfig] = None
    formref_config: Optional[FormRefConfig] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    KEYS = [
        'name', 'type', 'label', 'validations', 'asyncValidation', 'condition', 'archived',
        'sectionId', 'tableConfig', 'datagridConfig', 'daterangeConfig', 'formrefConfig',
    ]

    @property
    def required_rule(self) -> Optional[RuleSpec]:
        for rule in self.validations:
            if rule.type == 'required':
                return rule
        return None

    @property
    def is_required(self) -> bool:
        return self.required_rule is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FieldSpec':
        return cls(
            name=str(data.get('name') or ''),
            type=data.get('type') or 'text',
            label=data.get('label') or '',
            validations=_rules_from(data.get('validations')),
            async_validation=AsyncValidationConfig.from_dict(data.get('asyncValidation')),
            condition=ConditionSpec.from_dict(data.get('condition')),
            archived=bool(data.get('archived', False)),
            section_id=data.get('sectionId') if isinstance(data.get('sectionId'), str) else None,
            table_config=TableConfig.from_dict(data.get('tableConfig')),
            datagrid_config=DataGridConfig.from_dict(data.get('datagridConfig')),
            daterange_config=DateRangeConfig.from_dict(data.get('daterangeConfig')),
            formref_config=FormRefConfig.from_dict(data.get('formrefConfig')),
            extra=_extra(data, cls.KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out.update({'name': self.name, 'label': self.label, 'type': self.type})
        if self.validations:
            out['validations'] = [rule.to_dict() for rule in self.validations]
        optional = {
            'asyncValidation': self.async_validation,
            'condition': self.condition,
            'tableConfig': self.table_config,
            'datagridConfig': self.datagrid_config,
            'daterangeConfig': self.daterange_config,
            'formrefConfig': self.formref_config,
        }
        for key, value in optional.items():
            if value is not None:
                out[key] = value.to_dict()
        if self.archived:
            out['archived'] = True
        if self.section_id is not None:
            out['sectionId'] = self.section_id
        return out


@dataclass
class SectionSpec:
    id: str
    title: str = ''
    order: Optional[int] = None
    condition: Optional[ConditionSpec] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SectionSpec':
        return cls(
            id=str(data.get('id') or ''),
            title=data.get('title') or '',
            order=data.get('order'),
            condition=ConditionSpec.from_dict(data.get('condition')),
            extra=_extra(data, ['id', 'title', 'order', 'condition']),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out.update({'id': self.id, 'title': self.title})
        if self.order is not None:
            out['order'] = self.order
        if self.condition is not None:
            out['condition'] = self.condition.to_dict()
        return out


@dataclass
class WizardPage:
    id: str
    title: str = ''
    section_ids: List[str] = field(default_factory=list)
    order: Optional[int] = None
    condition: Optional[ConditionSpec] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WizardPage':
        return cls(
            id=str(data.get('id') or ''),
            title=data.get('title') or '',
            section_ids=[str(s) for s in _as_list(data.get('sectionIds'))],
            order=data.get('order'),
            condition=ConditionSpec.from_dict(data.get('condition')),
            extra=_extra(data, ['id', 'title', 'sectionIds', 'order', 'condition']),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out.update({'id': self.id, 'title': self.title, 'sectionIds': list(self.section_ids)})
        if self.order is not None:
            out['order'] = self.order
        if self.condition is not None:
            out['condition'] = self.condition.to_dict()
        return out


@dataclass
class WizardSpec:
    pages: List[WizardPage] = field(default_factory=list)
    allow_free_navigation: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Optional['WizardSpec']:
        if not isinstance(data, dict):
            return None
        return cls(
            pages=[WizardPage.from_dict(p) for p in _as_list(data.get('pages')) if isinstance(p, dict)],
            allow_free_navigation=bool(data.get('allowFreeNavigation', False)),
            extra=_extra(data, ['pages', 'allowFreeNavigation']),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out['pages'] = [page.to_dict() for page in self.pages]
        if self.allow_free_navigation:
            out['allowFreeNavigation'] = True
        return out


@dataclass
class FormSpec:
    """Declarative description of a form; immutable for the length of a validation pass"""
    id: str
    fields: List[FieldSpec] = field(default_factory=list)
    sections: List[SectionSpec] = field(default_factory=list)
    wizard: Optional[WizardSpec] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def field_names(self) -> List[str]:
        return [form_field.name for form_field in self.fields]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FormSpec':
        """Build a FormSpec from its JSON shape, skipping entries that are not objects"""
        data = _as_dict(data)
        fields = []
        for index, raw in enumerate(_as_list(data.get('fields'))):
            if not isinstance(raw, dict):
                logger.warning(f"Skipping non-object field at index {index} in form {data.get('id')!r}")
                continue
            fields.append(FieldSpec.from_dict(raw))
        return cls(
            id=str(data.get('id') or ''),
            fields=fields,
            sections=[SectionSpec.from_dict(s) for s in _as_list(data.get('sections')) if isinstance(s, dict)],
            wizard=WizardSpec.from_dict(data.get('wizard')),
            extra=_extra(data, ['id', 'fields', 'sections', 'wizard']),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out['id'] = self.id
        out['fields'] = [form_field.to_dict() for form_field in self.fields]
        if self.sections:
            out['sections'] = [section.to_dict() for section in self.sections]
        if self.wizard is not None:
            out['wizard'] = self.wizard.to_dict()
        return out


@dataclass
class FieldValidationError:
    """One failed rule (or external error when `rule` is None) at an addressable path"""
    field: str
    message: str
    rule: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'field': self.field, 'message': self.message, 'rule': self.rule}


@dataclass
class ValidationResult:
    valid: bool
    errors: List[FieldValidationError] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[FieldValidationError]) -> 'ValidationResult':
        return cls(valid=len(errors) == 0, errors=list(errors))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'valid': self.valid,
            'errors': [error.to_dict() for error in self.errors],
        }

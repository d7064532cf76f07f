"""
Visibility and wizard aggregation

Field, section and page visibility are conditions evaluated against the full form
data (never a row). The wizard navigator aggregates validity over the visible fields
of the current page before it lets the user move forward.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from .conditions import ConditionalRuleEvaluator, is_blank
from .engine import FormValidationEngine, coerce_spec
from .errors import ExternalErrorStore
from .types import FieldSpec, FieldValidationError, FormSpec, SectionSpec, UNDEFINED, ValidationResult, WizardPage

logger = logging.getLogger(__name__)


def is_field_visible(field_spec: FieldSpec, form_data: Dict[str, Any]) -> bool:
    return ConditionalRuleEvaluator.evaluate_condition(field_spec.condition, form_data)


def is_section_visible(section: SectionSpec, form_data: Dict[str, Any]) -> bool:
    return ConditionalRuleEvaluator.evaluate_condition(section.condition, form_data)


def is_page_visible(page: WizardPage, form_data: Dict[str, Any]) -> bool:
    return ConditionalRuleEvaluator.evaluate_condition(page.condition, form_data)


def _row_has_data(row: Any) -> bool:
    return isinstance(row, dict) and any(not is_blank(v) for v in row.values())


def has_data(field_spec: FieldSpec, value: Any) -> bool:
    """Whether a field's value counts as carrying data, by field type"""
    if value is None or value is UNDEFINED:
        return False

    field_type = field_spec.type
    if field_type == 'table':
        return isinstance(value, list) and any(_row_has_data(row) for row in value)
    elif field_type == 'datagrid':
        return isinstance(value, dict) and any(_row_has_data(row) for row in value.values())
    elif field_type == 'phone':
        return isinstance(value, dict) and bool(value.get('number') or value.get('countryCode'))
    elif field_type == 'daterange':
        return isinstance(value, dict) and bool(value.get('fromDate') or value.get('toDate'))
    elif field_type == 'checkbox':
        if isinstance(value, list):
            return len(value) > 0
        return bool(value)
    elif field_type == 'formref':
        if not isinstance(value, dict):
            return False
        for item in value.values():
            if isinstance(item, list):
                if item:
                    return True
            elif isinstance(item, dict):
                if _row_has_data(item):
                    return True
            elif not is_blank(item):
                return True
        return False
    return not is_blank(value)


def is_archived_field_visible(field_spec: FieldSpec, form_data: Dict[str, Any]) -> bool:
    """Non-archived fields always pass; archived fields only show when they still carry data"""
    if not field_spec.archived:
        return True
    return has_data(field_spec, form_data.get(field_spec.name, UNDEFINED))


def visible_sections(spec: Union[FormSpec, Dict[str, Any]], form_data: Dict[str, Any]) -> List[SectionSpec]:
    spec = coerce_spec(spec)
    return [section for section in spec.sections if is_section_visible(section, form_data)]


def visible_fields(spec: Union[FormSpec, Dict[str, Any]], form_data: Dict[str, Any],
                   section_ids: Optional[List[str]] = None,
                   include_unsectioned: bool = True) -> List[FieldSpec]:
    """
    Fields that are currently shown

    A field is shown when its own condition holds, its section (if any) is visible and,
    for archived fields, it still carries data.

    Args:
        spec: The form configuration
        form_data: The current full form data
        section_ids: Restrict to fields of these sections
        include_unsectioned: With section_ids, also include fields with no known section
    """
    spec = coerce_spec(spec)
    known_sections = {section.id: section for section in spec.sections}

    result = []
    for form_field in spec.fields:
        section_id = form_field.section_id
        section = known_sections.get(section_id) if isinstance(section_id, str) else None

        if section_ids is not None:
            if section is None:
                if not include_unsectioned:
                    continue
            elif section.id not in section_ids:
                continue

        if section is not None and not is_section_visible(section, form_data):
            continue
        if not is_field_visible(form_field, form_data):
            continue
        if not is_archived_field_visible(form_field, form_data):
            continue
        result.append(form_field)
    return result


def visible_pages(spec: Union[FormSpec, Dict[str, Any]], form_data: Dict[str, Any]) -> List[WizardPage]:
    """Visible wizard pages sorted by `order`; pages without one follow, in declaration order"""
    spec = coerce_spec(spec)
    if spec.wizard is None:
        return []

    indexed = [
        (index, page) for index, page in enumerate(spec.wizard.pages)
        if is_page_visible(page, form_data)
    ]
    indexed.sort(key=lambda item: (item[1].order is None, item[1].order or 0, item[0]))
    return [page for _, page in indexed]


def _strip_empty_rows(rows: Any) -> Any:
    if not isinstance(rows, list):
        return rows
    return [row for row in rows if _row_has_data(row)]


def build_submission_payload(spec: Union[FormSpec, Dict[str, Any]], form_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    The data to submit

    Only configured input fields are included. Archived fields are dropped unless they
    still carry data, and all-empty table rows are removed.
    """
    spec = coerce_spec(spec)
    payload = {}
    for form_field in spec.fields:
        if form_field.type == 'info':
            continue
        value = form_data.get(form_field.name, UNDEFINED)
        if value is UNDEFINED:
            continue
        if form_field.archived and not has_data(form_field, value):
            continue
        if form_field.type == 'table':
            value = _strip_empty_rows(value)
        payload[form_field.name] = value
    return payload


class WizardNavigator:
    """
    Page navigation for a multi-page form

    Args:
        spec: The form configuration (must carry a wizard)
        data_provider: Returns the current full form data
        engine: Validation engine used for page validity
        error_store: External errors that also block leaving a page
    """

    def __init__(self, spec: Union[FormSpec, Dict[str, Any]],
                 data_provider: Callable[[], Dict[str, Any]],
                 engine: Optional[FormValidationEngine] = None,
                 error_store: Optional[ExternalErrorStore] = None):
        self.spec = coerce_spec(spec)
        self.data_provider = data_provider
        self.engine = engine or FormValidationEngine()
        self.error_store = error_store
        self._index = 0

    @property
    def allow_free_navigation(self) -> bool:
        return bool(self.spec.wizard and self.spec.wizard.allow_free_navigation)

    @property
    def pages(self) -> List[WizardPage]:
        return self.refresh()

    def refresh(self) -> List[WizardPage]:
        """
        Recompute the visible pages and clamp the stored index to them

        The clamped index is kept, so a page that was hidden under the user and later
        shown again is only reached through a validated forward move.
        """
        pages = visible_pages(self.spec, self.data_provider())
        self._index = max(0, min(self._index, len(pages) - 1)) if pages else 0
        return pages

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def current_index(self) -> int:
        """Index into the visible pages, clamped as pages appear and disappear"""
        self.refresh()
        return self._index

    @property
    def current_page(self) -> Optional[WizardPage]:
        pages = self.pages
        if not pages:
            return None
        return pages[self.current_index]

    def is_first_page(self) -> bool:
        return self.current_index == 0

    def is_last_page(self) -> bool:
        return self.current_index >= self.page_count - 1

    def progress(self) -> float:
        count = self.page_count
        if count == 0:
            return 0.0
        return (self.current_index + 1) / count * 100

    def page_fields(self, page: Optional[WizardPage] = None) -> List[FieldSpec]:
        """Visible fields on a page; fields without a known section sit on the first visible page"""
        pages = self.pages
        page = page or (pages[self.current_index] if pages else None)
        if page is None:
            return []
        is_first = bool(pages) and pages[0].id == page.id
        return visible_fields(self.spec, self.data_provider(), section_ids=page.section_ids,
                              include_unsectioned=is_first)

    def validate_current_page(self) -> ValidationResult:
        fields = self.page_fields()
        data = self.data_provider()
        errors: List[FieldValidationError] = self.engine.validate_fields(fields, data)

        if self.error_store is not None:
            names = {f.name for f in fields}
            errors.extend(error for error in self.error_store.as_errors() if error.field in names)
        return ValidationResult.from_errors(errors)

    def go_to_page(self, index: int) -> bool:
        """
        Move to a visible page

        Moving forward validates the current page first (unless free navigation is
        allowed) and refuses to move when it is invalid. Moving back never validates.
        """
        count = self.page_count
        if index < 0 or index >= count:
            return False

        current = self.current_index
        if index > current and not self.allow_free_navigation:
            result = self.validate_current_page()
            if not result.valid:
                logger.debug(f"Wizard blocked on page {current}: {len(result.errors)} error(s)")
                return False

        self._index = index
        return True

    def next_page(self) -> bool:
        return self.go_to_page(self.current_index + 1)

    def previous_page(self) -> bool:
        return self.go_to_page(self.current_index - 1)

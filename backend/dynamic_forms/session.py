"""
Interactive form session

Owns the mutable state of one form being filled in (data, touched fields, external
errors, async validation and wizard position) and calls the pure validation engine
when values change. Only the changed field and its dependents are re-walked.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

from .validation.async_coordinator import AsyncValidationCoordinator
from .validation.dependencies import DependencyGraph
from .validation.engine import FormResolver, FormValidationEngine, coerce_spec
from .validation.errors import ExternalErrorStore, merge_results
from .validation.registry import ValidationRegistries
from .validation.types import FieldValidationError, FormSpec, UNDEFINED, ValidationResult
from .validation.visibility import WizardNavigator, build_submission_payload, visible_fields

logger = logging.getLogger(__name__)


@dataclass
class SubmissionOutcome:
    accepted: bool
    payload: Optional[Dict[str, Any]] = None
    errors: List[FieldValidationError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'accepted': self.accepted,
            'payload': self.payload,
            'errors': [error.to_dict() for error in self.errors],
        }


class FormSession:
    """
    One user's pass through a form

    Async validators are scheduled on the running event loop, so set_value and blur
    must be called from inside it for fields that carry asyncValidation.
    """

    def __init__(self, spec: Union[FormSpec, Dict[str, Any]], data: Optional[Dict[str, Any]] = None,
                 registries: Optional[ValidationRegistries] = None,
                 form_resolver: Optional[FormResolver] = None,
                 async_timeout: Optional[float] = None,
                 on_errors_changed: Optional[Callable[[], None]] = None):
        self.spec = coerce_spec(spec)
        self.registries = registries or ValidationRegistries()
        self.engine = FormValidationEngine(self.registries, form_resolver)
        self.data: Dict[str, Any] = dict(data or {})
        self.touched: Set[str] = set()
        self.dirty: Set[str] = set()
        self.external_errors = ExternalErrorStore()
        self.on_errors_changed = on_errors_changed

        self.async_validation = AsyncValidationCoordinator(
            self.spec,
            registries=self.registries,
            error_store=self.external_errors,
            data_provider=lambda: self.data,
            timeout=async_timeout,
            on_change=lambda field_name: self._notify(),
        )
        self.wizard: Optional[WizardNavigator] = None
        if self.spec.wizard is not None:
            self.wizard = WizardNavigator(self.spec, lambda: self.data, self.engine, self.external_errors)

        self._field_errors: Dict[str, List[FieldValidationError]] = {}
        self.revalidate()

    @property
    def graph(self) -> DependencyGraph:
        return DependencyGraph.for_spec(self.spec)

    @property
    def is_busy(self) -> bool:
        return self.async_validation.is_busy

    # =========================================================================
    # VALUE CHANGES
    # =========================================================================

    def set_value(self, field_name: str, value: Any) -> None:
        """
        Store a value, re-validate the field and its dependents, and feed the change trigger

        Table and datagrid values are replaced whole and re-walked whole; same-row
        dependencies matter only to callers that re-validate single cells.
        """
        self.data[field_name] = value
        self.dirty.add(field_name)

        affected = {field_name} | set(self.graph.dependents_of(field_name))
        self.revalidate(affected)
        if self.wizard is not None:
            self.wizard.refresh()
        if self.async_validation.has_async_validation(field_name):
            self.async_validation.handle_change(field_name, value)
        self._notify()

    def blur(self, field_name: str) -> None:
        self.touched.add(field_name)
        if self.async_validation.has_async_validation(field_name):
            self.async_validation.handle_blur(field_name, self.data.get(field_name, UNDEFINED))
        self._notify()

    def touch_all(self, names: Optional[Iterable[str]] = None) -> None:
        self.touched.update(names if names is not None else self.spec.field_names)

    def revalidate(self, field_names: Optional[Iterable[str]] = None) -> None:
        """Re-walk the given fields (all fields when omitted) against the current data"""
        names = set(field_names) if field_names is not None else set(self.spec.field_names)
        for form_field in self.spec.fields:
            if form_field.name in names:
                self._field_errors[form_field.name] = self.engine.validate_field(form_field, self.data)

    # =========================================================================
    # ERRORS
    # =========================================================================

    def errors(self, only_touched: bool = True) -> List[FieldValidationError]:
        """Rule errors (of touched fields unless only_touched is False) followed by external errors"""
        rule_errors = []
        for name in self.spec.field_names:
            if only_touched and name not in self.touched:
                continue
            rule_errors.extend(self._field_errors.get(name, []))
        return merge_results(ValidationResult.from_errors(rule_errors), self.external_errors).errors

    def validate(self) -> ValidationResult:
        """Full synchronous pass over the current data, external errors included"""
        return merge_results(self.engine.validate_form(self.spec, self.data), self.external_errors)

    @property
    def valid(self) -> bool:
        if self.is_busy or len(self.external_errors) > 0:
            return False
        return self.engine.validate_form(self.spec, self.data).valid

    def set_errors(self, errors: Iterable[Union[FieldValidationError, Dict[str, Any]]]) -> None:
        """Replace all external errors, e.g. with errors returned by a server"""
        self.external_errors.set_many(
            error if isinstance(error, FieldValidationError)
            else FieldValidationError(field=error.get('field', ''), message=error.get('message', ''))
            for error in errors
        )
        self._notify()

    def clear_errors(self) -> None:
        self.external_errors.clear()
        self._notify()

    def clear_field_error(self, field_name: str) -> None:
        self.external_errors.clear_field(field_name)
        self._notify()

    def _notify(self) -> None:
        if self.on_errors_changed is not None:
            self.on_errors_changed()

    # =========================================================================
    # VISIBILITY AND WIZARD
    # =========================================================================

    def visible_field_names(self) -> List[str]:
        return [f.name for f in visible_fields(self.spec, self.data)]

    def next_page(self) -> bool:
        """Advance the wizard; the current page's fields are marked touched so their errors show"""
        if self.wizard is None:
            return False
        self.touch_all(f.name for f in self.wizard.page_fields())
        moved = self.wizard.next_page()
        self._notify()
        return moved

    def previous_page(self) -> bool:
        if self.wizard is None:
            return False
        return self.wizard.previous_page()

    def go_to_page(self, index: int) -> bool:
        if self.wizard is None:
            return False
        if index > self.wizard.current_index:
            self.touch_all(f.name for f in self.wizard.page_fields())
        return self.wizard.go_to_page(index)

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    async def submit(self) -> SubmissionOutcome:
        """
        Validate everything and build the payload

        Refused while an async check is pending or running. Otherwise every async
        validator runs to completion before the synchronous pass.
        """
        if self.is_busy:
            logger.info(f"Submission of form {self.spec.id!r} refused: async validation in progress")
            return SubmissionOutcome(accepted=False)

        self.touch_all()
        async_valid = await self.async_validation.validate_all_async()
        result = self.validate()
        self._notify()

        if not async_valid or not result.valid:
            return SubmissionOutcome(accepted=False, errors=result.errors)
        return SubmissionOutcome(accepted=True, payload=build_submission_payload(self.spec, self.data))

    def save(self) -> Optional[Dict[str, Any]]:
        """Snapshot of the current payload for a draft save; None while async validation is busy"""
        if self.is_busy:
            logger.info(f"Save of form {self.spec.id!r} blocked: async validation in progress")
            return None
        return build_submission_payload(self.spec, self.data)

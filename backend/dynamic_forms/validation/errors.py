"""
External errors
Errors not produced by a RuleSpec (async validators, host-supplied server errors), keyed by field name
"""
from typing import Dict, Iterable, List, Optional

from .types import FieldValidationError, ValidationResult


class ExternalErrorStore:
    """One message per field; owned by a single orchestration context"""

    def __init__(self):
        self._errors: Dict[str, str] = {}

    def set(self, field_name: str, message: str) -> None:
        self._errors[field_name] = message

    def set_many(self, errors: Iterable[FieldValidationError]) -> None:
        """Replace every external error with the given ones"""
        self._errors.clear()
        for error in errors:
            self._errors[error.field] = error.message

    def get(self, field_name: str) -> Optional[str]:
        return self._errors.get(field_name)

    def has(self, field_name: str) -> bool:
        return field_name in self._errors

    def clear_field(self, field_name: str) -> None:
        self._errors.pop(field_name, None)

    def clear(self) -> None:
        self._errors.clear()

    def as_errors(self) -> List[FieldValidationError]:
        return [
            FieldValidationError(field=name, message=message, rule=None)
            for name, message in self._errors.items()
        ]

    def __len__(self) -> int:
        return len(self._errors)

    def __contains__(self, field_name: str) -> bool:
        return self.has(field_name)


def merge_results(result: ValidationResult, store: ExternalErrorStore) -> ValidationResult:
    """Append external errors to a rule result, skipping exact (field, message) duplicates"""
    errors = list(result.errors)
    seen = {(error.field, error.message) for error in errors}
    for error in store.as_errors():
        if (error.field, error.message) not in seen:
            errors.append(error)
    return ValidationResult.from_errors(errors)

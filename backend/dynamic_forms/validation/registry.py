"""
Named validator registries and the formref resolver

Registries are plain objects handed to the engine's entry points, so two forms (or
two tests) never share validators by accident.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

from .types import FieldSpec, FormSpec

logger = logging.getLogger(__name__)

# (value, params, field_spec, form_data) -> bool
CustomValidatorFn = Callable[[Any, Optional[Dict[str, Any]], Optional[FieldSpec], Optional[Dict[str, Any]]], bool]

# (value, params, field_spec, form_data) -> awaitable {valid, message?}
AsyncValidatorFn = Callable[[Any, Optional[Dict[str, Any]], Optional[FieldSpec], Optional[Dict[str, Any]]], Awaitable[Any]]

# (search_text, params, field_spec, form_data) -> awaitable [{value, label}]
AutocompleteFetchHandler = Callable[[str, Optional[Dict[str, Any]], Optional[FieldSpec], Optional[Dict[str, Any]]], Awaitable[List[Dict[str, Any]]]]

T = TypeVar('T')


class NamedRegistry(Generic[T]):
    """Name -> callable map; registration is last-write-wins with a warning on overwrite"""

    kind = 'Validator'

    def __init__(self):
        self._entries: Dict[str, T] = {}

    def register(self, name: str, entry: T) -> None:
        if name in self._entries:
            logger.warning(f"{self.__class__.__name__}: {self.kind} {name!r} is being overwritten")
        self._entries[name] = entry

    def register_all(self, entries: Dict[str, T]) -> None:
        for name, entry in entries.items():
            self.register(name, entry)

    def get(self, name: str) -> Optional[T]:
        return self._entries.get(name)

    def has(self, name: str) -> bool:
        return name in self._entries

    def list(self) -> List[str]:
        return list(self._entries.keys())

    def unregister(self, name: str) -> bool:
        return self._entries.pop(name, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __len__(self) -> int:
        return len(self._entries)


class ValidatorRegistry(NamedRegistry[CustomValidatorFn]):
    """Synchronous custom validators referenced by RuleSpec.customValidatorName"""
    kind = 'Validator'


class AsyncValidatorRegistry(NamedRegistry[AsyncValidatorFn]):
    """Asynchronous validators referenced by asyncValidation.validatorName"""
    kind = 'Async validator'


class AutocompleteFetchRegistry(NamedRegistry[AutocompleteFetchHandler]):
    """Option fetchers for autocomplete fields (used by the UI layer, never by rule evaluation)"""
    kind = 'Fetch handler'

    async def fetch(self, name: str, search_text: str, params: Optional[Dict[str, Any]] = None,
                    field_spec: Optional[FieldSpec] = None,
                    form_data: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a fetch handler, returning no options when it is missing or fails"""
        handler = self.get(name)
        if handler is None:
            logger.warning(f"Autocomplete fetch handler {name!r} not registered")
            return []
        try:
            options = await handler(search_text, params, field_spec, form_data)
        except Exception as e:
            logger.error(f"Autocomplete fetch handler {name!r} failed: {e}", exc_info=True)
            return []
        return [option for option in (options or []) if isinstance(option, dict) and 'value' in option]


@dataclass
class ValidationRegistries:
    """The collaborators the engine consults, bundled for injection"""
    validators: ValidatorRegistry = field(default_factory=ValidatorRegistry)
    async_validators: AsyncValidatorRegistry = field(default_factory=AsyncValidatorRegistry)
    autocomplete: AutocompleteFetchRegistry = field(default_factory=AutocompleteFetchRegistry)

    def summary(self) -> Dict[str, List[str]]:
        return {
            'validators': sorted(self.validators.list()),
            'async_validators': sorted(self.async_validators.list()),
            'autocomplete': sorted(self.autocomplete.list()),
        }


class FormSpecResolver:
    """Resolves formref targets by form id"""

    def __init__(self, specs: Optional[List[FormSpec]] = None):
        self._specs: Dict[str, FormSpec] = {}
        for spec in specs or []:
            self.register(spec)

    def register(self, spec: FormSpec) -> None:
        if spec.id in self._specs:
            logger.info(f"Replacing registered form {spec.id!r}")
        self._specs[spec.id] = spec

    def resolve(self, form_id: str) -> Optional[FormSpec]:
        spec = self._specs.get(form_id)
        if spec is None:
            logger.warning(f"FormRef: could not load form with id {form_id!r}")
        return spec

    def form_ids(self) -> List[str]:
        return list(self._specs.keys())

    def __call__(self, form_id: str) -> Optional[FormSpec]:
        return self.resolve(form_id)


_default_registries: Optional[ValidationRegistries] = None
_default_resolver: Optional[FormSpecResolver] = None


def default_registries() -> ValidationRegistries:
    """Process-wide registries used by the Django layer; the engine never reads these implicitly"""
    global _default_registries
    if _default_registries is None:
        _default_registries = ValidationRegistries()
    return _default_registries


def default_resolver() -> FormSpecResolver:
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = FormSpecResolver()
    return _default_resolver

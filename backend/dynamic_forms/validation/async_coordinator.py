"""
Async validation coordinator

Per-field state machine for validators that need an asynchronous round trip:
idle -> pending -> validating -> resolved, back to pending on the next qualifying input.

Only the last value inside a debounce window reaches the validator. A newer input
cancels the in-flight call, and a result that still arrives for an older dispatch
token is discarded, so a stale verdict never overwrites a newer one.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from .conditions import is_blank
from .engine import coerce_spec
from .errors import ExternalErrorStore
from .registry import ValidationRegistries
from .types import FieldSpec, FormSpec, UNDEFINED

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = 'Validation failed'
DEFAULT_INVALID_MESSAGE = 'Invalid value'


class AsyncFieldStatus(str, Enum):
    IDLE = 'idle'
    PENDING = 'pending'
    VALIDATING = 'validating'
    RESOLVED = 'resolved'


@dataclass
class AsyncValidationResult:
    valid: bool
    message: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> 'AsyncValidationResult':
        """Accept what an async validator returns: this class, a {valid, message} dict or a bool"""
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, dict):
            return cls(valid=bool(raw.get('valid')), message=raw.get('message'))
        return cls(valid=bool(raw))

    def to_dict(self) -> Dict[str, Any]:
        return {'valid': self.valid, 'message': self.message}


@dataclass
class AsyncFieldState:
    """Mutable per-field bookkeeping owned by the coordinator"""
    field_name: str
    status: AsyncFieldStatus = AsyncFieldStatus.IDLE
    valid: Optional[bool] = None
    message: Optional[str] = None
    last_value: Any = UNDEFINED
    token: int = 0
    timer: Optional[asyncio.TimerHandle] = None
    task: Optional[asyncio.Task] = None

    @property
    def is_busy(self) -> bool:
        return self.status in (AsyncFieldStatus.PENDING, AsyncFieldStatus.VALIDATING)


class AsyncValidationCoordinator:
    """
    Drives the asynchronous validators of one form

    Args:
        spec: The form configuration
        registries: Registries holding the named async validators
        error_store: Where verdicts land as external errors (keyed by field name)
        data_provider: Returns the current full form data
        timeout: Optional per-call timeout in seconds; expiry counts as a failure
        on_change: Called with the field name whenever that field's state changes

    Must be driven from inside a running event loop.
    """

    def __init__(self, spec: Union[FormSpec, Dict[str, Any]],
                 registries: Optional[ValidationRegistries] = None,
                 error_store: Optional[ExternalErrorStore] = None,
                 data_provider: Optional[Callable[[], Dict[str, Any]]] = None,
                 timeout: Optional[float] = None,
                 on_change: Optional[Callable[[str], None]] = None):
        self.spec = coerce_spec(spec)
        self.registries = registries or ValidationRegistries()
        self.error_store = error_store if error_store is not None else ExternalErrorStore()
        self.data_provider = data_provider or dict
        self.timeout = timeout
        self.on_change = on_change

        self._fields: Dict[str, FieldSpec] = {
            f.name: f for f in self.spec.fields
            if f.async_validation is not None and not f.archived
        }
        self._states: Dict[str, AsyncFieldState] = {name: AsyncFieldState(name) for name in self._fields}

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def field_names(self):
        return list(self._fields.keys())

    @property
    def is_busy(self) -> bool:
        """True while any field is pending or validating; submission and save wait on this"""
        return any(state.is_busy for state in self._states.values())

    def is_validating(self, field_name: str) -> bool:
        state = self._states.get(field_name)
        return state is not None and state.status == AsyncFieldStatus.VALIDATING

    def state_for(self, field_name: str) -> Optional[AsyncFieldState]:
        return self._states.get(field_name)

    def has_async_validation(self, field_name: str) -> bool:
        return field_name in self._fields

    # =========================================================================
    # TRIGGERS
    # =========================================================================

    def handle_change(self, field_name: str, value: Any) -> None:
        """A value changed; only fields with trigger=change react"""
        field_spec = self._fields.get(field_name)
        if field_spec is None or field_spec.async_validation.trigger != 'change':
            return
        self.error_store.clear_field(field_name)
        self._schedule(field_spec, value)

    def handle_blur(self, field_name: str, value: Any) -> None:
        """The field lost focus; only fields with trigger=blur react"""
        field_spec = self._fields.get(field_name)
        if field_spec is None or field_spec.async_validation.trigger != 'blur':
            return
        self._schedule(field_spec, value)

    def _schedule(self, field_spec: FieldSpec, value: Any) -> None:
        state = self._supersede(field_spec.name)
        state.last_value = value
        state.status = AsyncFieldStatus.PENDING

        loop = asyncio.get_running_loop()
        delay = field_spec.async_validation.debounce_ms / 1000.0
        state.timer = loop.call_later(delay, self._fire, field_spec.name, state.token)
        self._notify(field_spec.name)

    def _supersede(self, field_name: str) -> AsyncFieldState:
        """Invalidate whatever is scheduled or in flight for the field and return its state"""
        state = self._states[field_name]
        state.token += 1
        if state.timer is not None:
            state.timer.cancel()
            state.timer = None
        if state.task is not None and not state.task.done():
            logger.debug(f"Cancelling superseded async validation for {field_name!r}")
            state.task.cancel()
        state.task = None
        return state

    def _fire(self, field_name: str, token: int) -> None:
        state = self._states[field_name]
        if token != state.token:
            return
        state.timer = None

        field_spec = self._fields[field_name]
        if self._short_circuit(field_spec, state.last_value):
            return

        state.status = AsyncFieldStatus.VALIDATING
        state.task = asyncio.get_running_loop().create_task(self._run(field_spec, state.last_value, token))
        self._notify(field_name)

    async def _run(self, field_spec: FieldSpec, value: Any, token: int) -> None:
        result = await self._invoke(field_spec, value)
        if token != self._states[field_spec.name].token:
            logger.debug(f"Discarding stale async result for {field_spec.name!r}")
            return
        self._apply(field_spec.name, result)

    def _short_circuit(self, field_spec: FieldSpec, value: Any) -> bool:
        """Empty optional fields skip the validator, drop any old async error and go idle"""
        if field_spec.is_required or not is_blank(value):
            return False
        state = self._states[field_spec.name]
        self.error_store.clear_field(field_spec.name)
        state.status = AsyncFieldStatus.IDLE
        state.valid = None
        state.message = None
        self._notify(field_spec.name)
        return True

    # =========================================================================
    # INVOCATION
    # =========================================================================

    async def _invoke(self, field_spec: FieldSpec, value: Any) -> AsyncValidationResult:
        config = field_spec.async_validation
        validator = self.registries.async_validators.get(config.validator_name)
        if validator is None:
            logger.warning(f"Async validator {config.validator_name!r} not registered; "
                           f"field {field_spec.name!r} treated as valid")
            return AsyncValidationResult(valid=True)

        try:
            call = validator(value, config.params, field_spec, self.data_provider())
            if self.timeout is not None:
                raw = await asyncio.wait_for(call, self.timeout)
            else:
                raw = await call
            return AsyncValidationResult.from_raw(raw)
        except asyncio.TimeoutError:
            logger.warning(f"Async validator {config.validator_name!r} timed out after {self.timeout}s "
                           f"on field {field_spec.name!r}")
            return AsyncValidationResult(valid=False, message=GENERIC_FAILURE_MESSAGE)
        except Exception as e:
            logger.error(f"Async validator {config.validator_name!r} failed on field {field_spec.name!r}: {e}",
                         exc_info=True)
            return AsyncValidationResult(valid=False, message=GENERIC_FAILURE_MESSAGE)

    def _apply(self, field_name: str, result: AsyncValidationResult) -> None:
        state = self._states[field_name]
        state.status = AsyncFieldStatus.RESOLVED
        state.task = None
        state.valid = result.valid
        state.message = None if result.valid else (result.message or DEFAULT_INVALID_MESSAGE)

        if result.valid:
            self.error_store.clear_field(field_name)
        else:
            self.error_store.set(field_name, state.message)
        self._notify(field_name)

    def _notify(self, field_name: str) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change(field_name)
        except Exception as e:
            logger.error(f"Async state listener failed for {field_name!r}: {e}", exc_info=True)

    # =========================================================================
    # IMMEDIATE VALIDATION
    # =========================================================================

    async def validate_field(self, field_name: str, value: Any = UNDEFINED) -> bool:
        """
        Run one field's async check to completion right now, bypassing debounce

        Anything scheduled or in flight for the field is superseded. Returns the
        verdict; fields without async validation are valid.
        """
        field_spec = self._fields.get(field_name)
        if field_spec is None:
            return True

        if value is UNDEFINED:
            value = self.data_provider().get(field_name, UNDEFINED)

        state = self._supersede(field_name)
        state.last_value = value
        token = state.token

        if self._short_circuit(field_spec, value):
            return True

        state.status = AsyncFieldStatus.VALIDATING
        self._notify(field_name)

        result = await self._invoke(field_spec, value)
        if token == state.token:
            self._apply(field_name, result)
        else:
            logger.debug(f"Async result for {field_name!r} superseded while validate_field was waiting")
        return result.valid

    async def validate_all_async(self) -> bool:
        """Run every async-validated field's check to completion; True only if all pass"""
        if not self._fields:
            return True
        results = await asyncio.gather(*(self.validate_field(name) for name in self._fields))
        return all(results)

    def cancel_all(self) -> None:
        """Drop every scheduled and in-flight check and return all fields to idle"""
        for name, state in self._states.items():
            self._supersede(name)
            state.status = AsyncFieldStatus.IDLE

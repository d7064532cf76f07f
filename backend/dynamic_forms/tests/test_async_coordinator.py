"""
Tests for the async validation coordinator
"""
import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from dynamic_forms.validation.async_coordinator import (
    AsyncFieldStatus, AsyncValidationCoordinator, AsyncValidationResult, GENERIC_FAILURE_MESSAGE,
)
from dynamic_forms.validation.errors import ExternalErrorStore
from dynamic_forms.validation.registry import ValidationRegistries

from .factories import make_spec


def async_spec(trigger='change', debounce_ms=0, required=False, validator='usernameAvailable'):
    validations = [{'type': 'required', 'message': 'Username is required'}] if required else []
    return make_spec([
        {
            'name': 'username',
            'label': 'Username',
            'validations': validations,
            'asyncValidation': {'validatorName': validator, 'trigger': trigger, 'debounceMs': debounce_ms},
        },
        {'name': 'displayName', 'label': 'Display name'},
    ])


class TestDebounceAndSupersession:
    """Only the last value reaches the validator and stale verdicts are dropped"""

    def setup_method(self):
        self.registries = ValidationRegistries()
        self.store = ExternalErrorStore()

    @pytest.mark.asyncio
    async def test_debounce_sends_only_the_last_value(self):
        loop = asyncio.get_running_loop()
        calls = []

        async def validator(value, params, field, data):
            calls.append((value, loop.time()))
            return {'valid': True}

        self.registries.async_validators.register('usernameAvailable', validator)
        coordinator = AsyncValidationCoordinator(async_spec(debounce_ms=300), self.registries, self.store)

        start = loop.time()
        coordinator.handle_change('username', 'a')
        await asyncio.sleep(0.1)
        coordinator.handle_change('username', 'ab')
        await asyncio.sleep(0.05)
        coordinator.handle_change('username', 'abc')
        await asyncio.sleep(0.5)

        assert len(calls) == 1
        value, called_at = calls[0]
        assert value == 'abc'
        assert called_at - start >= 0.45 - 0.01
        assert coordinator.state_for('username').status == AsyncFieldStatus.RESOLVED

    @pytest.mark.asyncio
    async def test_newer_input_cancels_in_flight_call(self):
        cancelled = asyncio.Event()

        async def validator(value, params, field, data):
            if value == 'taken':
                try:
                    await asyncio.sleep(1)
                except asyncio.CancelledError:
                    cancelled.set()
                    raise
                return {'valid': False, 'message': 'Username is taken'}
            return {'valid': True}

        self.registries.async_validators.register('usernameAvailable', validator)
        coordinator = AsyncValidationCoordinator(async_spec(), self.registries, self.store)

        coordinator.handle_change('username', 'taken')
        await asyncio.sleep(0.02)
        assert coordinator.is_validating('username')

        coordinator.handle_change('username', 'free')
        await asyncio.sleep(0.05)

        assert cancelled.is_set()
        assert self.store.get('username') is None
        assert coordinator.state_for('username').valid is True

    @pytest.mark.asyncio
    async def test_stale_result_is_discarded(self):
        """A verdict for an older dispatch never overwrites a newer one"""
        async def validator(value, params, field, data):
            if value == 'taken':
                await asyncio.sleep(0.2)
                return {'valid': False, 'message': 'Username is taken'}
            return {'valid': True}

        self.registries.async_validators.register('usernameAvailable', validator)
        coordinator = AsyncValidationCoordinator(async_spec(), self.registries, self.store)

        slow = asyncio.ensure_future(coordinator.validate_field('username', 'taken'))
        await asyncio.sleep(0.02)
        coordinator.handle_change('username', 'free')
        await asyncio.sleep(0.3)

        assert await slow is False
        state = coordinator.state_for('username')
        assert state.status == AsyncFieldStatus.RESOLVED
        assert state.valid is True
        assert self.store.get('username') is None

    @pytest.mark.asyncio
    async def test_busy_until_resolved(self):
        self.registries.async_validators.register('usernameAvailable', AsyncMock(return_value={'valid': True}))
        coordinator = AsyncValidationCoordinator(async_spec(debounce_ms=50), self.registries, self.store)

        coordinator.handle_change('username', 'ada')
        assert coordinator.is_busy is True
        assert coordinator.state_for('username').status == AsyncFieldStatus.PENDING

        await asyncio.sleep(0.1)
        assert coordinator.is_busy is False

    @pytest.mark.asyncio
    async def test_cancel_all_returns_to_idle(self):
        validator = AsyncMock(return_value={'valid': True})
        self.registries.async_validators.register('usernameAvailable', validator)
        coordinator = AsyncValidationCoordinator(async_spec(debounce_ms=50), self.registries, self.store)

        coordinator.handle_change('username', 'ada')
        coordinator.cancel_all()
        await asyncio.sleep(0.1)

        assert coordinator.is_busy is False
        validator.assert_not_awaited()


class TestTriggers:

    def setup_method(self):
        self.registries = ValidationRegistries()
        self.store = ExternalErrorStore()
        self.validator = AsyncMock(return_value={'valid': False, 'message': 'Username is taken'})
        self.registries.async_validators.register('usernameAvailable', self.validator)

    @pytest.mark.asyncio
    async def test_blur_field_ignores_changes(self):
        coordinator = AsyncValidationCoordinator(async_spec(trigger='blur'), self.registries, self.store)

        coordinator.handle_change('username', 'ada')
        assert coordinator.is_busy is False

        coordinator.handle_blur('username', 'ada')
        await asyncio.sleep(0.05)
        self.validator.assert_awaited_once()
        assert self.store.get('username') == 'Username is taken'

    @pytest.mark.asyncio
    async def test_change_field_ignores_blur(self):
        coordinator = AsyncValidationCoordinator(async_spec(trigger='change'), self.registries, self.store)
        coordinator.handle_blur('username', 'ada')
        await asyncio.sleep(0.02)
        self.validator.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_change_clears_previous_error(self):
        coordinator = AsyncValidationCoordinator(async_spec(debounce_ms=200), self.registries, self.store)
        self.store.set('username', 'Username is taken')

        coordinator.handle_change('username', 'other')
        assert self.store.get('username') is None
        coordinator.cancel_all()

    @pytest.mark.asyncio
    async def test_validator_receives_params_and_form_data(self):
        spec = async_spec()
        coordinator = AsyncValidationCoordinator(
            spec, self.registries, self.store, data_provider=lambda: {'username': 'ada', 'displayName': 'Ada'},
        )
        await coordinator.validate_field('username')

        value, params, field, data = self.validator.await_args.args
        assert value == 'ada'
        assert params is None
        assert field.name == 'username'
        assert data['displayName'] == 'Ada'


class TestEmptyValues:

    def setup_method(self):
        self.registries = ValidationRegistries()
        self.store = ExternalErrorStore()
        self.validator = AsyncMock(return_value={'valid': False, 'message': 'Nope'})
        self.registries.async_validators.register('usernameAvailable', self.validator)

    @pytest.mark.asyncio
    async def test_empty_optional_value_skips_validator(self):
        coordinator = AsyncValidationCoordinator(async_spec(trigger='blur'), self.registries, self.store)
        self.store.set('username', 'Old async error')

        coordinator.handle_blur('username', '')
        await asyncio.sleep(0.02)

        self.validator.assert_not_awaited()
        assert self.store.get('username') is None
        assert coordinator.state_for('username').status == AsyncFieldStatus.IDLE

    @pytest.mark.asyncio
    async def test_empty_required_value_still_validates(self):
        coordinator = AsyncValidationCoordinator(async_spec(required=True), self.registries, self.store)
        assert await coordinator.validate_field('username', '') is False
        self.validator.assert_awaited_once()


class TestFaults:

    def setup_method(self):
        self.registries = ValidationRegistries()
        self.store = ExternalErrorStore()

    @pytest.mark.asyncio
    async def test_raising_validator_becomes_generic_error(self):
        self.registries.async_validators.register('usernameAvailable', AsyncMock(side_effect=ConnectionError('down')))
        coordinator = AsyncValidationCoordinator(async_spec(trigger='blur'), self.registries, self.store)

        coordinator.handle_blur('username', 'ada')
        await asyncio.sleep(0.05)

        assert self.store.get('username') == GENERIC_FAILURE_MESSAGE
        assert coordinator.state_for('username').valid is False

    @pytest.mark.asyncio
    async def test_timeout_becomes_generic_error(self):
        async def slow(value, params, field, data):
            await asyncio.sleep(1)
            return {'valid': True}

        self.registries.async_validators.register('usernameAvailable', slow)
        coordinator = AsyncValidationCoordinator(async_spec(), self.registries, self.store, timeout=0.05)

        assert await coordinator.validate_field('username', 'ada') is False
        assert self.store.get('username') == GENERIC_FAILURE_MESSAGE

    @pytest.mark.asyncio
    async def test_missing_validator_is_valid_with_warning(self):
        coordinator = AsyncValidationCoordinator(async_spec(validator='unknown'), self.registries, self.store)

        with patch('dynamic_forms.validation.async_coordinator.logger') as mock_logger:
            assert await coordinator.validate_field('username', 'ada') is True
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_invalid_without_message_gets_default(self):
        self.registries.async_validators.register('usernameAvailable', AsyncMock(return_value={'valid': False}))
        coordinator = AsyncValidationCoordinator(async_spec(), self.registries, self.store)

        await coordinator.validate_field('username', 'ada')
        assert self.store.get('username') == 'Invalid value'


class TestValidateAllAsync:

    @pytest.mark.asyncio
    async def test_runs_every_async_field_and_ands_verdicts(self):
        registries = ValidationRegistries()
        store = ExternalErrorStore()
        registries.async_validators.register('usernameAvailable', AsyncMock(return_value={'valid': True}))
        registries.async_validators.register('emailUnique', AsyncMock(return_value={'valid': False, 'message': 'Email in use'}))

        spec = make_spec([
            {'name': 'username', 'label': 'Username', 'asyncValidation': {'validatorName': 'usernameAvailable'}},
            {'name': 'email', 'label': 'Email', 'asyncValidation': {'validatorName': 'emailUnique', 'trigger': 'change'}},
            {'name': 'plain', 'label': 'Plain'},
        ])
        data = {'username': 'ada', 'email': 'ada@example.com'}
        coordinator = AsyncValidationCoordinator(spec, registries, store, data_provider=lambda: data)

        assert await coordinator.validate_all_async() is False
        assert store.get('email') == 'Email in use'
        assert store.get('username') is None
        assert coordinator.is_busy is False

    @pytest.mark.asyncio
    async def test_no_async_fields_is_valid(self):
        coordinator = AsyncValidationCoordinator(make_spec([{'name': 'a', 'label': 'A'}]))
        assert await coordinator.validate_all_async() is True

    @pytest.mark.asyncio
    async def test_archived_fields_are_not_checked(self):
        registries = ValidationRegistries()
        validator = AsyncMock(return_value={'valid': False})
        registries.async_validators.register('v', validator)
        spec = make_spec([{'name': 'old', 'label': 'Old', 'archived': True, 'asyncValidation': {'validatorName': 'v'}}])

        coordinator = AsyncValidationCoordinator(spec, registries, data_provider=lambda: {'old': 'x'})
        assert await coordinator.validate_all_async() is True
        validator.assert_not_awaited()


class TestAsyncValidationResult:

    def test_from_raw_shapes(self):
        assert AsyncValidationResult.from_raw({'valid': True}).valid is True
        assert AsyncValidationResult.from_raw({'valid': False, 'message': 'x'}).message == 'x'
        assert AsyncValidationResult.from_raw(False).valid is False
        result = AsyncValidationResult(valid=True)
        assert AsyncValidationResult.from_raw(result) is result

"""
Tests for the named registries and the external error store
"""
from unittest.mock import AsyncMock, patch

import pytest

from dynamic_forms.validation.errors import ExternalErrorStore, merge_results
from dynamic_forms.validation.registry import FormSpecResolver, ValidationRegistries
from dynamic_forms.validation.types import FieldValidationError, ValidationResult

from .factories import make_spec


class TestNamedRegistries:

    def setup_method(self):
        self.registries = ValidationRegistries()

    def test_register_and_lookup(self):
        validator = lambda value, params, field, data: True
        self.registries.validators.register('alwaysValid', validator)

        assert self.registries.validators.get('alwaysValid') is validator
        assert 'alwaysValid' in self.registries.validators
        assert self.registries.validators.get('missing') is None

    def test_overwrite_is_last_write_wins_with_warning(self):
        first = lambda *args: True
        second = lambda *args: False

        with patch('dynamic_forms.validation.registry.logger') as mock_logger:
            self.registries.validators.register('check', first)
            self.registries.validators.register('check', second)

        assert self.registries.validators.get('check') is second
        mock_logger.warning.assert_called_once()

    def test_unregister_and_clear(self):
        self.registries.async_validators.register_all({'a': AsyncMock(), 'b': AsyncMock()})

        assert self.registries.async_validators.unregister('a') is True
        assert self.registries.async_validators.unregister('a') is False
        assert len(self.registries.async_validators) == 1

        self.registries.async_validators.clear()
        assert self.registries.async_validators.list() == []

    def test_summary_is_sorted(self):
        self.registries.validators.register('zeta', lambda *args: True)
        self.registries.validators.register('alpha', lambda *args: True)
        self.registries.autocomplete.register('cities', AsyncMock())

        assert self.registries.summary() == {
            'validators': ['alpha', 'zeta'],
            'async_validators': [],
            'autocomplete': ['cities'],
        }

    def test_registries_are_independent(self):
        other = ValidationRegistries()
        self.registries.validators.register('only-here', lambda *args: True)
        assert 'only-here' not in other.validators


class TestAutocompleteFetch:

    def setup_method(self):
        self.registries = ValidationRegistries()

    @pytest.mark.asyncio
    async def test_fetch_returns_options(self):
        handler = AsyncMock(return_value=[{'value': 'syd', 'label': 'Sydney'}, {'label': 'no value'}])
        self.registries.autocomplete.register('cities', handler)

        options = await self.registries.autocomplete.fetch('cities', 'sy', {'country': 'AU'})

        assert options == [{'value': 'syd', 'label': 'Sydney'}]
        handler.assert_awaited_once_with('sy', {'country': 'AU'}, None, None)

    @pytest.mark.asyncio
    async def test_missing_handler_returns_nothing(self):
        assert await self.registries.autocomplete.fetch('unknown', 'x') == []

    @pytest.mark.asyncio
    async def test_failing_handler_returns_nothing(self):
        self.registries.autocomplete.register('cities', AsyncMock(side_effect=RuntimeError('down')))

        with patch('dynamic_forms.validation.registry.logger') as mock_logger:
            assert await self.registries.autocomplete.fetch('cities', 'sy') == []
        mock_logger.error.assert_called_once()


class TestFormSpecResolver:

    def test_resolve_registered_form(self, contact_spec):
        resolver = FormSpecResolver([contact_spec])

        assert resolver('contact') is contact_spec
        assert resolver.form_ids() == ['contact']

    def test_unknown_form_warns(self):
        resolver = FormSpecResolver()
        with patch('dynamic_forms.validation.registry.logger') as mock_logger:
            assert resolver.resolve('missing') is None
        mock_logger.warning.assert_called_once()

    def test_register_replaces(self):
        resolver = FormSpecResolver([make_spec([], id='a')])
        replacement = make_spec([{'name': 'x', 'label': 'X'}], id='a')
        resolver.register(replacement)
        assert resolver.resolve('a') is replacement


class TestExternalErrors:

    def test_one_message_per_field(self):
        store = ExternalErrorStore()
        store.set('email', 'Taken')
        store.set('email', 'Still taken')

        assert len(store) == 1
        assert store.get('email') == 'Still taken'
        assert 'email' in store

    def test_set_many_replaces(self):
        store = ExternalErrorStore()
        store.set('name', 'Old')
        store.set_many([FieldValidationError(field='email', message='Server says no')])

        assert store.get('name') is None
        assert store.as_errors() == [FieldValidationError(field='email', message='Server says no', rule=None)]

    def test_merge_skips_exact_duplicates(self):
        result = ValidationResult.from_errors([
            FieldValidationError(field='email', message='Invalid email', rule='email'),
        ])
        store = ExternalErrorStore()
        store.set('email', 'Invalid email')
        store.set('name', 'Name already registered')

        merged = merge_results(result, store)

        assert merged.valid is False
        assert [(e.field, e.message, e.rule) for e in merged.errors] == [
            ('email', 'Invalid email', 'email'),
            ('name', 'Name already registered', None),
        ]

    def test_merge_empty(self):
        assert merge_results(ValidationResult(valid=True), ExternalErrorStore()).valid is True

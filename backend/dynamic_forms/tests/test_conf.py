"""
Tests for DYNAMIC_FORMS settings access
"""
from django.test import override_settings

from dynamic_forms.conf import get_forms_settings


class TestFormsSettings:

    @override_settings(DYNAMIC_FORMS=None)
    def test_defaults_when_unset(self):
        assert get_forms_settings() == {'ASYNC_TIMEOUT': None, 'CONFIG_DIR': None}

    @override_settings(DYNAMIC_FORMS={'ASYNC_TIMEOUT': 2.5})
    def test_configured_keys_merge_over_defaults(self):
        assert get_forms_settings() == {'ASYNC_TIMEOUT': 2.5, 'CONFIG_DIR': None}

    def test_debounce_is_not_a_setting(self):
        assert 'DEFAULT_DEBOUNCE_MS' not in get_forms_settings()

"""
Settings access for the dynamic forms app
"""
from typing import Any, Dict

from django.conf import settings

DEFAULTS: Dict[str, Any] = {
    'ASYNC_TIMEOUT': None,
    'CONFIG_DIR': None,
}


def get_forms_settings() -> Dict[str, Any]:
    """DYNAMIC_FORMS from Django settings, with defaults for missing keys"""
    configured = getattr(settings, 'DYNAMIC_FORMS', None) or {}
    merged = dict(DEFAULTS)
    merged.update(configured)
    return merged

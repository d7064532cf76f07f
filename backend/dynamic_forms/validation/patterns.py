"""
Regex patterns for form validation
Built-in patterns plus a cache for the user-supplied `pattern` rule values.
Patterns are written in browser (ECMAScript) syntax, where `$` only matches at the
very end of the input; they are translated before compiling.
"""
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional, Pattern

logger = logging.getLogger(__name__)


@dataclass
class ValidationPattern:
    """Named built-in pattern"""
    name: str
    pattern: str
    flags: int = 0
    compiled: Optional[Pattern] = None

    def __post_init__(self):
        self.compiled = re.compile(self.pattern, self.flags)


VALIDATION_PATTERNS: Dict[str, ValidationPattern] = {
    'email_basic': ValidationPattern(
        name='Basic Email',
        pattern=r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\Z',
    ),
}

EMAIL_PATTERN = VALIDATION_PATTERNS['email_basic']


def to_text(value: Any) -> str:
    """Render a scalar the way a JSON client would before matching it against a regex"""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def translate_end_anchors(pattern: str) -> str:
    """
    Rewrite every unescaped `$` outside a character class as `\\Z`

    Python's `$` also matches before a trailing newline; `\\Z` matches only at the
    end of the input, which is what `$` means in a browser regex without the m flag.
    """
    out = []
    escaped = False
    in_class = False
    for char in pattern:
        if escaped:
            escaped = False
        elif char == '\\':
            escaped = True
        elif in_class:
            if char == ']':
                in_class = False
        elif char == '[':
            in_class = True
        elif char == '$':
            out.append(r'\Z')
            continue
        out.append(char)
    return ''.join(out)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> Pattern:
    return re.compile(translate_end_anchors(pattern))


def compile_user_pattern(pattern: Any) -> Optional[Pattern]:
    """
    Compile a `pattern` rule value

    Returns:
        The compiled pattern, or None when the configured pattern is malformed
        (reported as a warning, never raised)
    """
    if not isinstance(pattern, str):
        logger.warning(f"Invalid regex pattern: {pattern!r} is not a string")
        return None
    try:
        return _compile(pattern)
    except re.error as e:
        logger.warning(f"Invalid regex pattern: {pattern!r}. Error: {str(e)}")
        return None

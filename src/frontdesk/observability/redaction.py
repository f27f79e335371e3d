"""Redaction for log context.

Guest contact details, card data and credentials never reach the logs:

- values under a sensitive key (password, token, card_*) are dropped whole
- free text has card numbers, phone numbers and emails masked
- containers are reduced to their shape
"""

import re
from typing import Any

_REDACTED = "[REDACTED]"

# Checked before phones: a 13-19 digit run would otherwise match as a phone.
_CARD_PATTERN = re.compile(r"\b(?:\d[ -]?){12,18}\d\b")
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")

_SENSITIVE_KEY_PARTS = ("password", "secret", "token", "authorization", "card_")


def is_sensitive_key(key: str) -> bool:
    key = key.lower()
    return any(part in key for part in _SENSITIVE_KEY_PARTS)


def redact_string(value: str) -> str:
    """Mask card numbers and phones; emails keep their domain (***@example.com)."""
    result = _CARD_PATTERN.sub(_REDACTED, value)
    result = _PHONE_PATTERN.sub(_REDACTED, result)
    return _EMAIL_PATTERN.sub(r"***@\1", result)


def redact_value(value: Any) -> str:
    """String form of value that is safe to log."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return f"dict(keys={sorted(value)})"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**fields: Any) -> dict[str, str]:
    """extra_fields payload with every value redacted."""
    return {
        key: _REDACTED if is_sensitive_key(key) else redact_value(value)
        for key, value in fields.items()
    }

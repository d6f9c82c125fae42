"""Redaction helpers for safe logging. All external data must pass through these."""

import re
from enum import Enum
from typing import Any

# Brazilian tax id (CPF): formatted, or a bare run of exactly 11 digits
CPF_PATTERN = re.compile(r"\d{3}\.\d{3}\.\d{3}-\d{2}|(?<!\d)\d{11}(?!\d)")
# Payment card: four groups of 4 digits, optional space/hyphen separators
CARD_PATTERN = re.compile(r"(?:\d{4}[- ]?){3}\d{4}")

_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"


def redact_string(value: str) -> str:
    """Redact PII patterns from a string.

    Card and CPF patterns go first so the broader phone pattern does not
    swallow them with surrounding text.
    """
    result = CARD_PATTERN.sub(_REDACTED, value)
    result = CPF_PATTERN.sub(_REDACTED, result)
    result = _PHONE_PATTERN.sub(_REDACTED, result)
    result = _EMAIL_PATTERN.sub(_REDACTED, result)
    return result


def redact_value(value: Any) -> str:
    """Redact any value for safe logging. Returns string representation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    # str enums (Intent, ReplyAction) log by value
    if isinstance(value, Enum):
        return redact_value(value.value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        # For dicts, only log keys (structure), never values
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}

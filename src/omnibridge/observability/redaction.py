"""Redaction helpers for safe logging. All external data must pass through these.

Inbound chat traffic is full of phone numbers, emails and free text typed by
the customer; none of it may reach the logs verbatim. Messenger sender ids
are long digit runs and are caught by the phone pattern.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any, Mapping

_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"

# Longer strings are cut after redaction
MAX_VALUE_LEN = 120


def redact_string(value: str) -> str:
    """Redact phone and email patterns from a string."""
    result = _EMAIL_PATTERN.sub(_REDACTED, value)
    return _PHONE_PATTERN.sub(_REDACTED, result)


def redact_value(value: Any) -> str:
    """Render one log value with PII removed."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, str):
        result = redact_string(value)
        if len(result) > MAX_VALUE_LEN:
            return f"{result[:MAX_VALUE_LEN]}...(+{len(result) - MAX_VALUE_LEN})"
        return result
    if isinstance(value, Mapping):
        # structure only, never values
        return f"dict(keys={sorted(str(k) for k in value.keys())})"
    if isinstance(value, (list, tuple, set)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}

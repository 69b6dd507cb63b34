# uiflow/utils/redact.py
"""
Log redaction helpers for step descriptions.

Goal: step arguments are rendered into trace lines, so passwords, tokens
and other credentials typed into forms must never reach the trace sink in
clear text.

Usage:
    from uiflow.utils.redact import redact_for_log, render_value

    safe_args = redact_for_log({"selector": "#pw", "password": "hunter2"})

Notes:
- This is **for logs only**. Do NOT use it to mutate data passed to the driver.
- `pydantic.SecretStr` and `SecretBytes` are always masked.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping

from pydantic import SecretBytes, SecretStr

# Case-insensitive key substrings that imply sensitive values
KEY_PATTERNS = [
    "password",
    "passwd",
    "secret",
    "token",
    "apikey",
    "api_key",
    "auth",
    "cookie",
    "session",
    "private_key",
    "jwt",
    "bearer",
    "credential",
]

# Regexes that suggest a value *content* is sensitive (e.g., looks like a bearer/jwt)
VALUE_PATTERNS = [
    re.compile(r"^Bearer\s+[A-Za-z0-9\-\._~\+\/]+=*$", re.IGNORECASE),
    re.compile(
        r"^eyJ[a-zA-Z0-9_\-]+?\.[a-zA-Z0-9_\-]+?\.[a-zA-Z0-9_\-]+$"
    ),  # naive JWT
    re.compile(r"^[A-Za-z0-9_\-]{32,}$"),  # long opaque tokens/ids
]

REDACTED = "********"

MAX_VALUE_CHARS = 64


def looks_sensitive_key(key: str) -> bool:
    k = key.lower()
    return any(p in k for p in KEY_PATTERNS)


def _looks_sensitive_value(val: Any) -> bool:
    if isinstance(val, (SecretStr, SecretBytes)):
        return True
    if not isinstance(val, str):
        return False
    s = val.strip()
    if not s:
        return False
    return any(rx.search(s) for rx in VALUE_PATTERNS)


def redact_for_log(obj: Any) -> Any:
    """
    Return a structurally similar object with sensitive material masked.

    - Dict: redact by key heuristics; recurse values.
    - Sequence: recurse each element.
    - String: redact if it matches sensitive value patterns; else pass through.
    - Secret types: always redacted.
    - Everything else: pass through.
    """
    if isinstance(obj, Mapping):
        out: Dict[str, Any] = {}
        for k, v in obj.items():
            if v is not None and (looks_sensitive_key(str(k)) or _looks_sensitive_value(v)):
                out[k] = REDACTED
            else:
                out[k] = redact_for_log(v)
        return out
    if isinstance(obj, (list, tuple)):
        return type(obj)(redact_for_log(x) for x in obj)
    if _looks_sensitive_value(obj):
        return REDACTED
    return obj


def truncate(text: str, limit: int = MAX_VALUE_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[: max(limit - 3, 0)] + "..."


def render_value(value: Any, limit: int = MAX_VALUE_CHARS) -> str:
    """Renders one already-redacted scalar for a trace line.

    Strings are quoted, callables show their name in brackets and other
    values use `repr`; the result never exceeds `limit` characters.
    """
    if value == REDACTED:
        return f"'{REDACTED}'"
    if isinstance(value, str):
        return repr(truncate(value, limit))
    if callable(value):
        name = getattr(value, "__name__", None) or type(value).__name__
        if name == "<lambda>":
            name = "lambda"
        return f"[{name}]"
    if isinstance(value, (list, tuple)):
        return truncate("[" + ", ".join(render_value(v, limit) for v in value) + "]", limit)
    return truncate(repr(value), limit)

"""Helpers for safe debug logging.

Device payloads and bus settings can carry credentials (Wi-Fi keys, broker
passwords, tokens) and arbitrarily large blobs. Parsed payloads are
redacted key by key, including JSON documents embedded in string fields,
before they reach a DEBUG log.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from iotingest.ingestion.decode import parse_json

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "token",
        "apikey",
        "api_key",
        "authorization",
        "wifipassword",
        "wifipass",
        "psk",
    }
)


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        # Devices nest JSON documents in string fields, e.g. ``health``.
        if value[:1] in ("{", "["):
            embedded = parse_json(value)
            if isinstance(embedded, (dict, list)):
                return redact_for_log(embedded, max_string=max_string, _depth=_depth + 1)
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated {len(value) - max_string} chars>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    # Fallback: represent unknown objects without dumping internals.
    return repr(value)

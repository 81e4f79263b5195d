"""Typed accessors over decoded JSON values.

Every accessor takes an arbitrary decoded JSON value and returns either a
value of the requested Python type or ``None``. None of them raise, so
classifiers can compose them into ordered fallback chains.

JSON typing is strict: booleans are not numbers, floats are not integers,
and strings are never coerced.
"""

from __future__ import annotations

import math
from typing import Any, Final

INT32_MIN: Final = -(2**31)
INT32_MAX: Final = 2**31 - 1
INT64_MIN: Final = -(2**63)
INT64_MAX: Final = 2**63 - 1


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()
"""Marker for "key not present", distinct from a present JSON ``null``."""


def first_present(value: Any, *keys: str) -> Any:
    """Return the value under the first of *keys* present in *value*.

    Only key presence counts: a key holding ``null`` wins over later keys.
    Returns :data:`MISSING` when *value* is not an object or holds none of
    the keys.
    """
    if not isinstance(value, dict):
        return MISSING
    for key in keys:
        if key in value:
            return value[key]
    return MISSING


def has_any_key(value: Any, *keys: str) -> bool:
    return isinstance(value, dict) and any(key in value for key in keys)


def json_object(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def json_array(value: Any) -> list[Any] | None:
    return value if isinstance(value, list) else None


def json_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def json_non_empty_str(value: Any) -> str | None:
    text = json_str(value)
    return text if text else None


def json_number(value: Any) -> float | None:
    """Return a JSON number (integer or float) as ``float``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        result = float(value)
    except OverflowError:
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def json_int(value: Any, *, minimum: int = INT64_MIN, maximum: int = INT64_MAX) -> int | None:
    """Return a JSON integer within ``[minimum, maximum]``.

    Floats (even integral ones such as ``1.0``) are rejected.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if value < minimum or value > maximum:
        return None
    return value


def json_int32(value: Any) -> int | None:
    return json_int(value, minimum=INT32_MIN, maximum=INT32_MAX)


def get_str(value: Any, key: str) -> str | None:
    return json_str(first_present(value, key))


def get_int(value: Any, key: str) -> int | None:
    return json_int(first_present(value, key))


def get_int32(value: Any, key: str) -> int | None:
    return json_int32(first_present(value, key))

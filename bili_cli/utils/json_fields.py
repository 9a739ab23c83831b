"""
Lenient accessors for loosely-typed JSON payloads.

Each accessor takes one or more candidate keys and returns the value of the
first key that is present with a usable value, so snake_case and camelCase
spellings of the same field can be read in one call.
"""

import math
from typing import Any, Mapping, Optional

_MISSING = object()


def as_object(value: Any) -> dict[str, Any]:
    """Returns `value` if it is a JSON object, otherwise an empty dict."""
    return value if isinstance(value, dict) else {}


def _first(obj: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = obj.get(key)
        if value is not None:
            return value
    return _MISSING


def _to_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float):
        # NaN and +/-Infinity pass json.loads but have no int value
        return int(value) if math.isfinite(value) else None
    return None


def get_str(obj: Mapping[str, Any], *keys: str, default: str = "") -> str:
    """First non-empty string among `keys`; numbers are stringified."""
    for key in keys:
        value = obj.get(key)
        if isinstance(value, str) and value:
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
    return default


def get_int(obj: Mapping[str, Any], *keys: str, default: int = 0) -> int:
    value = _first(obj, keys)
    if value is _MISSING:
        return default
    converted = _to_int(value)
    return default if converted is None else converted


def get_optional_int(obj: Mapping[str, Any], *keys: str) -> Optional[int]:
    """Like `get_int` but returns None when no key is present."""
    value = _first(obj, keys)
    return None if value is _MISSING else _to_int(value)


def get_bool(obj: Mapping[str, Any], *keys: str, default: bool = False) -> bool:
    value = _first(obj, keys)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return default


def get_list(obj: Mapping[str, Any], *keys: str) -> list[Any]:
    """First JSON array among `keys`, or an empty list."""
    for key in keys:
        value = obj.get(key)
        if isinstance(value, list):
            return value
    return []


def get_object(obj: Mapping[str, Any], *keys: str) -> Optional[dict[str, Any]]:
    """First JSON object among `keys`, or None."""
    for key in keys:
        value = obj.get(key)
        if isinstance(value, dict):
            return value
    return None


def str_list(values: list[Any]) -> list[str]:
    return ["" if v is None else str(v) for v in values]


def int_list(values: list[Any]) -> list[int]:
    return [_to_int(v) or 0 for v in values]

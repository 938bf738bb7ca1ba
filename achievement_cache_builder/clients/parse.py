from __future__ import annotations

from typing import Any


def as_str(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def as_int(value: object) -> int | None:
    """
    Strict numeric conversion.

    - Accepts: int, integral float
    - Rejects: bool, strings (even if numeric)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    return None


def as_flag(value: object) -> bool:
    """
    Interpret provider "achieved" fields.

    Providers use bools (PSN) or 0/1 integers (Steam); anything else is treated as not earned.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return False


def optional_str(value: object) -> str | None:
    s = as_str(value)
    return s or None


def get_list_of_dicts(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def get_path(data: Any, *keys: str) -> Any:
    """
    Walk nested dicts, returning None as soon as a level is missing or not a dict.
    """
    cur = data
    for k in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(k)
    return cur

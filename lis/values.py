"""Value conversions shared by the LIS interpreter and builtin functions.

LIS values are ``None`` (``nothing``), booleans, ints, floats, strings and
lists of those.
"""

from __future__ import annotations

from typing import Any

from dialogue.errors import InvalidValue


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join(to_text(v) for v in value)
    return str(value)


def to_number(value: Any) -> int | float:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            raise InvalidValue(f"{value!r} is not a number") from None
    raise InvalidValue(f"{to_text(value)!r} is not a number")


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_numeric_text(value: Any) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        float(value)
    except ValueError:
        return False
    return True


def truthy(value: Any) -> bool:
    return bool(value)


def is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def loose_equal(left: Any, right: Any) -> bool:
    """``=`` / ``==`` / ``is``: numbers and numeric texts compare as numbers,
    anything else by text."""
    if left is None or right is None:
        return left is right
    if (is_number(left) or is_numeric_text(left)) and (is_number(right) or is_numeric_text(right)):
        if is_number(left) or is_number(right):
            return to_number(left) == to_number(right)
    if type(left) is type(right):
        return left == right
    return to_text(left) == to_text(right)


def strict_equal(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if is_number(left) and is_number(right):
        return left == right
    return type(left) is type(right) and left == right


def compare(op: str, left: Any, right: Any) -> bool:
    """Ordering comparison; numbers when either side is a number."""
    if is_number(left) or is_number(right) or not (isinstance(left, str) and isinstance(right, str)):
        left, right = to_number(left), to_number(right)
    if op == "<":
        return left < right
    if op == ">":
        return left > right
    if op == "<=":
        return left <= right
    return left >= right

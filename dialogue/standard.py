"""Standard form — canonical text for values caught by time and date catchers.

``"28 february 2000"`` caught by ``{date}`` becomes ``"28/02/2000"``.  Only
extraction goes through here; matching never does.
"""

from __future__ import annotations

import re

from dialogue.catchers import CatcherRegistry, month_names
from dialogue.errors import UnknownCatcher

PSEUDO_CATCHERS = ("?", "#", "*")

_DIGITS_RE = re.compile(r"\d+")


def zero(number: str, length: int = 2) -> str:
    """Left-pad a digit string with zeros: ``"2"`` -> ``"02"``."""
    return number.rjust(length, "0")


def _month_index(text: str, months: list[str]) -> int | None:
    """1-based index of the first month name contained in *text* (case-sensitive)."""
    for i, month in enumerate(months):
        if month in text:
            return i + 1
    return None


def get_standard(value: str, catcher: str, catchers: CatcherRegistry) -> str:
    """Format *value*, caught by *catcher*, in its standard form."""
    if catcher not in PSEUDO_CATCHERS and not catchers.has(catcher):
        raise UnknownCatcher(catcher)
    if value is None:
        return value

    numbers = _DIGITS_RE.findall(value)

    if catcher == "short_time" and len(numbers) >= 2:
        return f"{zero(numbers[0])}:{zero(numbers[1])}"

    if catcher == "time" and len(numbers) >= 3:
        return f"{zero(numbers[0])}:{zero(numbers[1])}:{zero(numbers[2])}"

    if catcher == "short_date":
        month = _month_index(value, month_names(catchers.memory))
        if month is not None and numbers:
            return f"{zero(numbers[0])}/{zero(str(month))}"
        if len(numbers) >= 2:
            return f"{zero(numbers[0])}/{zero(numbers[1])}"
        return value

    if catcher == "date":
        month = _month_index(value, month_names(catchers.memory))
        if month is not None and len(numbers) >= 2:
            return f"{zero(numbers[0])}/{zero(str(month))}/{zero(numbers[1], 4)}"
        if len(numbers) >= 3:
            return f"{zero(numbers[0])}/{zero(numbers[1])}/{zero(numbers[2], 4)}"
        return value

    return value


def _numbers(standard: str) -> tuple[int, ...]:
    return tuple(int(n) for n in _DIGITS_RE.findall(standard))


def parse_date(value: str, catchers: CatcherRegistry) -> tuple[int, ...]:
    """``"5 march"`` -> ``(5, 3)``"""
    return _numbers(get_standard(value, "short_date", catchers))


def parse_long_date(value: str, catchers: CatcherRegistry) -> tuple[int, ...]:
    """``"5 march 2012"`` -> ``(5, 3, 2012)``"""
    return _numbers(get_standard(value, "date", catchers))


def parse_time(value: str, catchers: CatcherRegistry) -> tuple[int, ...]:
    return _numbers(get_standard(value, "short_time", catchers))


def parse_long_time(value: str, catchers: CatcherRegistry) -> tuple[int, ...]:
    return _numbers(get_standard(value, "time", catchers))

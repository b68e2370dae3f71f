"""Catcher registry — named regex fragments usable as ``{name}`` in handlers.

Fragments never contain a capturing group; the pattern compiler wraps each
one in its own group.  The time and date catchers build their fragment from
the engine's memory (unit and month names), so the fragment is produced again
every time a handler is compiled rather than cached.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

from dialogue.errors import DuplicateName, EmptyRegex, InvalidName
from dialogue.memory import MemoryStore

logger = logging.getLogger(__name__)

CATCHER_NAME_RE = re.compile(r"^[a-z_][a-z0-9_#*?!+\-/\\]*$")

# Memory cells read by the time and date catchers, with their fallbacks
HOURS_CELL = "HOURS_NAME"
MINUTES_CELL = "MINUTES_NAME"
SECONDS_CELL = "SECONDS_NAME"
MONTHS_CELL = "MONTHS"

_FALLBACK_WORDS = {
    HOURS_CELL: "hours",
    MINUTES_CELL: "minutes",
    SECONDS_CELL: "seconds",
    MONTHS_CELL: (
        "january,february,march,april,may,june,july,"
        "august,september,october,november,december"
    ),
}

Producer = Callable[[MemoryStore], str]


@dataclass(frozen=True)
class Catcher:
    """A registered catcher."""

    name: str
    produce: Producer
    builtin: bool = False


def memory_word(memory: MemoryStore, cell: str) -> str:
    """Read a locale word from memory, falling back to the English default."""
    value = memory.get(cell)
    if value is None or value == "":
        return _FALLBACK_WORDS[cell]
    return str(value)


def month_names(memory: MemoryStore) -> list[str]:
    return [m.strip() for m in memory_word(memory, MONTHS_CELL).split(",") if m.strip()]


# ---------------------------------------------------------------------------
# Built-in fragments
# ---------------------------------------------------------------------------

_NUMBER = r"\d+\.?|\d*\.\d+"
_INTEGER = r"\d+"
_HOUR = r"(?:[01]?\d|2[0-3])"
_SIXTY = r"[0-5]?\d"
_DAY = r"(?:0?[1-9]|[12]\d|3[01])"
_MONTH_NUMBER = r"(?:0?[1-9]|1[0-2])"
_EMAIL = (
    r"(?:(?:[^<>()\[\]\\.,;:\s@\"]+(?:\.[^<>()\[\]\\.,;:\s@\"]+)*)|(?:\".+\"))"
    r"@(?:(?:[^<>()\[\]\\.,;:\s@\"]+\.)+[^<>()\[\]\\.,;:\s@\"]{2,})"
)
_URL = (
    r"(?:https?://|)(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{2,256}\.[a-z]{2,6}\b"
    r"[-a-zA-Z0-9@:%_+.~#?&/=]*(?:#.*|)"
)


def _words(memory: MemoryStore, cell: str) -> str:
    return re.escape(memory_word(memory, cell))


def _months(memory: MemoryStore) -> str:
    return "|".join(re.escape(m) for m in month_names(memory))


def _short_time(memory: MemoryStore) -> str:
    return (
        f"{_HOUR}(?: *: *| +{_words(memory, HOURS_CELL)} +){_SIXTY}"
        f"(?:| +{_words(memory, MINUTES_CELL)})"
    )


def _time(memory: MemoryStore) -> str:
    return (
        f"{_HOUR}(?: *: *| +{_words(memory, HOURS_CELL)} +){_SIXTY}"
        f"(?: *: *| +{_words(memory, MINUTES_CELL)} +){_SIXTY}"
        f"(?:| +{_words(memory, SECONDS_CELL)})"
    )


def _short_date(memory: MemoryStore) -> str:
    return (
        f"{_DAY}(?: *[/\\-.] *{_MONTH_NUMBER}| +(?:{_months(memory)}))"
    )


def _date(memory: MemoryStore) -> str:
    return (
        f"{_DAY}(?: *[/\\-.] *{_MONTH_NUMBER} *[/\\-.] *| +(?:{_months(memory)}) +)\\d{{4}}"
    )


def _fixed(fragment: str) -> Producer:
    return lambda memory: fragment


BUILTIN_CATCHERS: dict[str, Producer] = {
    "*": _fixed(r".+?"),
    "digit": _fixed(r"\d"),
    "number": _fixed(_NUMBER),
    "unsigned_number": _fixed(rf"-?(?:{_NUMBER})"),
    "integer": _fixed(_INTEGER),
    "unsigned_integer": _fixed(rf"-?{_INTEGER}"),
    "letter": _fixed(r"[a-zA-Z]"),
    "alphanum": _fixed(r"[a-zA-Z0-9]"),
    "short_time": _short_time,
    "time": _time,
    "short_date": _short_date,
    "date": _date,
    "email": _fixed(_EMAIL),
    "url": _fixed(_URL),
}


class CatcherRegistry:
    """Built-in and user catchers, keyed by name."""

    def __init__(self, memory: MemoryStore) -> None:
        self.memory = memory
        self._catchers: dict[str, Catcher] = {
            name: Catcher(name, producer, builtin=True)
            for name, producer in BUILTIN_CATCHERS.items()
        }

    def register(self, name: str, regex: str) -> Catcher:
        """Register a user catcher from a raw regex without capturing group."""
        if not isinstance(name, str) or not CATCHER_NAME_RE.match(name):
            raise InvalidName("catcher", name)
        if not isinstance(regex, str) or not regex.strip():
            raise EmptyRegex(name)
        if name in self._catchers:
            raise DuplicateName("catcher", name)

        catcher = Catcher(name, _fixed(regex))
        self._catchers[name] = catcher
        logger.info("Registered catcher: %s", name)
        return catcher

    def has(self, name: str) -> bool:
        return name in self._catchers

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def lookup(self, name: str) -> str | None:
        """Produce the current fragment of *name*, or ``None`` if unknown."""
        catcher = self._catchers.get(name)
        if catcher is None:
            return None
        return catcher.produce(self.memory)

    def names(self) -> list[str]:
        return list(self._catchers)

    def custom(self) -> dict[str, str]:
        """Fragments of the user-registered catchers, in registration order."""
        return {
            name: catcher.produce(self.memory)
            for name, catcher in self._catchers.items()
            if not catcher.builtin
        }

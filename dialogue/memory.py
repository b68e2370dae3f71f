"""Typed memory store — scalar cells and homogeneous typed lists.

A cell holds either a scalar (``str``, ``int``, ``float`` or ``bool``) or a
list whose elements all share one of the list types below.  The reserved
``$`` cell maps every list cell to its element type, which is how a list is
told apart from a scalar living in the same name space.

The store is a plain in-process structure with no locking: it must not be
mutated from several threads at once without external synchronisation.
"""

from __future__ import annotations

import logging
import random
from typing import Any

from dialogue.errors import (
    IndexOutOfRange,
    InvalidName,
    InvalidValue,
    TypeMismatch,
    UnknownCell,
)
from dialogue.events import EventBus

logger = logging.getLogger(__name__)

TYPES_CELL = "$"

LIST_TYPES = ("boolean", "integer", "floating", "string")

TYPE_ALIASES = {
    "bool": "boolean",
    "int": "integer",
    "float": "floating",
    "str": "string",
}

Scalar = str | int | float | bool


def normalize_list_type(type_name: str) -> str:
    """Resolve a list type alias (``int`` -> ``integer``)."""
    canonical = TYPE_ALIASES.get(type_name, type_name)
    if canonical not in LIST_TYPES:
        raise InvalidValue(
            f"Unknown list type '{type_name}', must be one of: {', '.join(LIST_TYPES)}"
        )
    return canonical


def is_valid_in_list(value: Any, type_name: str) -> bool:
    """Tell whether *value* may be stored in a list of *type_name*."""
    if type_name == "boolean":
        return isinstance(value, bool)
    # bool is an int subclass, it never counts as a number here
    if isinstance(value, bool):
        return False
    if type_name == "integer":
        if isinstance(value, int):
            return value >= 0
        return isinstance(value, float) and value.is_integer() and value >= 0
    if type_name == "floating":
        return isinstance(value, (int, float))
    if type_name == "string":
        return isinstance(value, str)
    return False


def infer_list_type(values: list[Any]) -> str:
    """Guess the narrowest list type able to hold every value."""
    for type_name in LIST_TYPES:
        if all(is_valid_in_list(v, type_name) for v in values):
            return type_name
    raise InvalidValue("List values don't share a single list type")


class MemoryStore:
    """Key -> value/list storage read by catchers, the dispatcher and scripts."""

    def __init__(self, events: EventBus | None = None, rng: random.Random | None = None) -> None:
        self._cells: dict[str, Any] = {}
        self._list_types: dict[str, str] = {}
        self.events = events or EventBus()
        self.rng = rng or random.Random()

    # -- writes ------------------------------------------------------------

    def learn(self, cell: str, value: Scalar) -> None:
        """Assign a scalar value to *cell* (turning a list cell into a scalar)."""
        self._check_name(cell)
        if not isinstance(value, (str, int, float, bool)):
            raise TypeMismatch(cell, "string, number or boolean")

        # A list becoming a scalar must lose its type marker
        self._list_types.pop(cell, None)
        self._cells[cell] = value
        logger.debug("Learnt cell '%s'", cell, extra={"cell": cell})
        self.events.emit("learnt", cell, value, None)

    def learn_list(self, cell: str, values: list[Any], type_name: str) -> None:
        """Store a typed list.  Nothing is written if any element is invalid."""
        self._check_name(cell)
        type_name = normalize_list_type(type_name)
        if not isinstance(values, (list, tuple)):
            raise InvalidValue(f"List for cell '{cell}' must be a list")

        values = list(values)
        for i, value in enumerate(values):
            if not is_valid_in_list(value, type_name):
                raise TypeMismatch(cell, type_name, index=i)

        self._cells[cell] = values
        self._list_types[cell] = type_name
        logger.debug("Learnt %s list '%s' (%d values)", type_name, cell, len(values),
                     extra={"cell": cell})
        self.events.emit("learnt", cell, list(values), None)

    def forget(self, cell: str) -> Any:
        """Remove *cell* and return the value it held."""
        if cell == TYPES_CELL or cell not in self._cells:
            raise UnknownCell(cell, f"Can't forget unknown cell '{cell}'")

        value = self._cells.pop(cell)
        self._list_types.pop(cell, None)
        logger.debug("Forgot cell '%s'", cell, extra={"cell": cell})
        self.events.emit("forgot", cell, value)
        return value

    def push_list_value(self, cell: str, value: Any, index: int | None = None) -> None:
        """Write *value* at *index* of a list; append when *index* is omitted
        or equal to the list's length."""
        type_name = self._require_list(cell)
        if not is_valid_in_list(value, type_name):
            raise TypeMismatch(cell, type_name)

        values = self._cells[cell]
        if index is None:
            values.append(value)
            index = len(values) - 1
        else:
            if isinstance(index, bool) or not isinstance(index, int) or index < 0:
                raise IndexOutOfRange(cell, index, len(values))
            if index == len(values):
                values.append(value)
            elif index > len(values):
                raise IndexOutOfRange(cell, index, len(values))
            else:
                values[index] = value

        self.events.emit("learnt", cell, value, index)

    def sort_list(self, cell: str, assign: bool = False, ascending: bool = True) -> list[Any]:
        """Sort a list numerically (integer/floating) or by code point.

        With ``assign=False`` memory is left untouched and a sorted copy is
        returned.
        """
        type_name = self._require_list(cell)
        if type_name in ("integer", "floating"):
            ordered = sorted(self._cells[cell], reverse=not ascending)
        else:
            ordered = sorted(self._cells[cell], key=_code_point_key, reverse=not ascending)
        return self._commit(cell, ordered, assign)

    def shuffle_list(self, cell: str, assign: bool = False) -> list[Any]:
        """Shuffle a list with the Fisher-Yates algorithm."""
        self._require_list(cell)
        values = list(self._cells[cell])
        current = len(values)
        while current:
            picked = self.rng.randrange(current)
            current -= 1
            values[current], values[picked] = values[picked], values[current]
        return self._commit(cell, values, assign)

    def reverse_list(self, cell: str, assign: bool = False) -> list[Any]:
        self._require_list(cell)
        return self._commit(cell, list(reversed(self._cells[cell])), assign)

    # -- reads -------------------------------------------------------------

    def knows(self, cell: str) -> bool:
        return cell != TYPES_CELL and cell in self._cells

    def is_list(self, cell: str) -> bool:
        return cell in self._list_types

    def get(self, cell: str) -> Any:
        """Text-friendly read: lists are joined with ``;``, unknown cells give ``None``."""
        if not self.knows(cell):
            return None
        if cell in self._list_types:
            return ";".join(_list_item_text(v) for v in self._cells[cell])
        return self._cells[cell]

    def get_cell(self, cell: str) -> Any:
        """Natural read: a copy of the list for list cells, the scalar otherwise."""
        if cell in self._list_types:
            return list(self._cells[cell])
        if not self.knows(cell):
            return None
        return self._cells[cell]

    def get_list(self, cell: str) -> list[Any] | None:
        if cell not in self._list_types:
            return None
        return list(self._cells[cell])

    def list_value(self, cell: str, index: int) -> Any:
        values = self._cells.get(cell) if cell in self._list_types else None
        if values is None or not 0 <= index < len(values):
            return None
        return values[index]

    def list_last(self, cell: str) -> Any:
        if cell not in self._list_types or not self._cells[cell]:
            return None
        return self._cells[cell][-1]

    def list_type(self, cell: str) -> str | None:
        return self._list_types.get(cell)

    def list_length(self, cell: str) -> int | None:
        if cell not in self._list_types:
            return None
        return len(self._cells[cell])

    def knows_value(self, value: Any) -> bool:
        """Tell whether a scalar cell holds *value* (lists are not searched)."""
        return self.search_value(value) is not None

    def knows_value_in_list(self, cell: str, value: Any) -> bool:
        return cell in self._list_types and any(_same(v, value) for v in self._cells[cell])

    def search_value(self, value: Any, search_lists: bool = False) -> str | None:
        """Return the first cell holding *value*, optionally looking inside lists."""
        for cell, held in self._cells.items():
            if cell in self._list_types:
                if search_lists and any(_same(v, value) for v in held):
                    return cell
            elif _same(held, value):
                return cell
        return None

    def cells(self) -> list[str]:
        return list(self._cells)

    def dump(self) -> dict[str, Any]:
        """Copy of the whole memory, the ``$`` cell included."""
        data: dict[str, Any] = {
            cell: list(v) if cell in self._list_types else v
            for cell, v in self._cells.items()
        }
        data[TYPES_CELL] = dict(self._list_types)
        return data

    def clear(self) -> None:
        self._cells.clear()
        self._list_types.clear()

    # -- helpers -----------------------------------------------------------

    def _check_name(self, cell: str) -> None:
        if not isinstance(cell, str) or not cell or cell == TYPES_CELL:
            raise InvalidName("memory cell", cell)

    def _require_list(self, cell: str) -> str:
        if cell not in self._list_types:
            raise UnknownCell(cell, f"List '{cell}' was not found")
        return self._list_types[cell]

    def _commit(self, cell: str, values: list[Any], assign: bool) -> list[Any]:
        if assign:
            self._cells[cell] = values
            self.events.emit("learnt", cell, list(values), None)
            return list(values)
        return values


def _code_point_key(value: Any) -> str:
    return _list_item_text(value)


def _list_item_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _same(left: Any, right: Any) -> bool:
    """Strict equality: ``"3"`` differs from ``3`` and ``True`` differs from ``1``."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if isinstance(left, str) != isinstance(right, str):
        return False
    return left == right

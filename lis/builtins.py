"""Functions callable from LIS expressions.

Every function receives the running interpreter first, then its evaluated
arguments.  Calls to names missing from ``BUILTINS`` are rejected when the
script is compiled.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable

from dialogue.errors import InvalidValue
from dialogue.standard import get_standard
from lis.values import strict_equal, to_number, to_text


@dataclass(frozen=True)
class Builtin:
    name: str
    func: Callable[..., Any]
    min_args: int
    max_args: int


def _len(rt, value):
    if isinstance(value, list):
        return len(value)
    return len(to_text(value))


def _int(rt, value):
    return int(to_number(value))


def _float(rt, value):
    return float(to_number(value))


def _round(rt, value, digits=0):
    number = to_number(value)
    digits = int(to_number(digits))
    # Half away from zero, the way people round
    factor = 10 ** digits
    rounded = math.floor(abs(number) * factor + 0.5) / factor
    rounded = math.copysign(rounded, number)
    return int(rounded) if digits <= 0 else rounded


def _min(rt, *values):
    values = _flatten(values)
    if not values:
        raise InvalidValue("min() needs at least one value")
    return min(to_number(v) for v in values)


def _max(rt, *values):
    values = _flatten(values)
    if not values:
        raise InvalidValue("max() needs at least one value")
    return max(to_number(v) for v in values)


def _flatten(values):
    flat = []
    for value in values:
        if isinstance(value, list):
            flat.extend(value)
        else:
            flat.append(value)
    return flat


def _random(rt, low=None, high=None):
    if low is None:
        return rt.rng.random()
    if high is None:
        low, high = 0, low
    return rt.rng.randint(int(to_number(low)), int(to_number(high)))


def _join(rt, values, separator=","):
    if not isinstance(values, list):
        return to_text(values)
    return to_text(separator).join(to_text(v) for v in values)


def _split(rt, text, separator=","):
    return to_text(text).split(to_text(separator))


def _contains(rt, haystack, needle):
    if isinstance(haystack, list):
        return any(strict_equal(v, needle) for v in haystack)
    return to_text(needle) in to_text(haystack)


def _knows(rt, cell):
    return rt.memory.knows(to_text(cell))


def _islist(rt, cell):
    return rt.memory.is_list(to_text(cell))


def _standard(rt, value, catcher):
    return get_standard(to_text(value), to_text(catcher), rt.catchers)


BUILTINS: dict[str, Builtin] = {
    b.name: b for b in (
        Builtin("len", _len, 1, 1),
        Builtin("upper", lambda rt, v: to_text(v).upper(), 1, 1),
        Builtin("lower", lambda rt, v: to_text(v).lower(), 1, 1),
        Builtin("trim", lambda rt, v: to_text(v).strip(), 1, 1),
        Builtin("str", lambda rt, v: to_text(v), 1, 1),
        Builtin("int", _int, 1, 1),
        Builtin("float", _float, 1, 1),
        Builtin("round", _round, 1, 2),
        Builtin("floor", lambda rt, v: math.floor(to_number(v)), 1, 1),
        Builtin("ceil", lambda rt, v: math.ceil(to_number(v)), 1, 1),
        Builtin("abs", lambda rt, v: abs(to_number(v)), 1, 1),
        Builtin("min", _min, 1, 64),
        Builtin("max", _max, 1, 64),
        Builtin("random", _random, 0, 2),
        Builtin("join", _join, 1, 2),
        Builtin("split", _split, 1, 2),
        Builtin("contains", _contains, 2, 2),
        Builtin("knows", _knows, 1, 1),
        Builtin("islist", _islist, 1, 1),
        Builtin("standard", _standard, 2, 2),
    )
}

"""Tests for standard-form formatting of caught values."""

from __future__ import annotations

import pytest

from dialogue.catchers import CatcherRegistry
from dialogue.errors import UnknownCatcher
from dialogue.memory import MemoryStore
from dialogue.standard import get_standard, parse_date, parse_long_date, parse_long_time, parse_time, zero


def _catchers() -> CatcherRegistry:
    return CatcherRegistry(MemoryStore())


class TestZero:
    def test_pads(self):
        assert zero("5") == "05"
        assert zero("12") == "12"
        assert zero("7", 4) == "0007"


class TestGetStandard:
    @pytest.mark.parametrize("value, catcher, expected", [
        ("9 hours 5", "short_time", "09:05"),
        ("9:45", "short_time", "09:45"),
        ("21 hours 30 minutes", "short_time", "21:30"),
        ("1:2:3", "time", "01:02:03"),
        ("10 hours 20 minutes 30 seconds", "time", "10:20:30"),
        ("5 march", "short_date", "05/03"),
        ("5/3", "short_date", "05/03"),
        ("5 march 2012", "date", "05/03/2012"),
        ("28 february 2000", "date", "28/02/2000"),
        ("5.3.2012", "date", "05/03/2012"),
        ("hello", "*", "hello"),
        ("42", "integer", "42"),
    ])
    def test_formats(self, value, catcher, expected):
        assert get_standard(value, catcher, _catchers()) == expected

    def test_pseudo_catchers_pass_through(self):
        catchers = _catchers()
        for pseudo in ("?", "#", "*"):
            assert get_standard("as is", pseudo, catchers) == "as is"

    def test_none_passes_through(self):
        assert get_standard(None, "date", _catchers()) is None

    def test_unknown_catcher(self):
        with pytest.raises(UnknownCatcher):
            get_standard("x", "planet", _catchers())

    def test_month_names_from_memory(self):
        memory = MemoryStore()
        memory.learn("MONTHS", "janvier,fevrier,mars,avril,mai,juin,juillet,"
                               "aout,septembre,octobre,novembre,decembre")
        assert get_standard("14 juillet 1789", "date", CatcherRegistry(memory)) == "14/07/1789"


class TestParseHelpers:
    def test_parse_date(self):
        assert parse_date("5 march", _catchers()) == (5, 3)

    def test_parse_long_date(self):
        assert parse_long_date("5 march 2012", _catchers()) == (5, 3, 2012)

    def test_parse_time(self):
        assert parse_time("9 hours 5", _catchers()) == (9, 5)

    def test_parse_long_time(self):
        assert parse_long_time("10:20:30", _catchers()) == (10, 20, 30)

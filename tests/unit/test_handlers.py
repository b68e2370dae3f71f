"""Tests for the handler registry."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from dialogue.catchers import CatcherRegistry
from dialogue.errors import DuplicateName, InvalidValue, UnknownCatcher, UnknownCell
from dialogue.events import EventBus
from dialogue.handlers import (
    ORIGIN_HOST,
    ORIGIN_TEMPLATE,
    HandlerRegistry,
    render_template,
)
from dialogue.locales import LocaleRegistry
from dialogue.memory import MemoryStore
from dialogue.patterns import PatternCompiler


def _registry(events: EventBus | None = None) -> HandlerRegistry:
    compiler = PatternCompiler(CatcherRegistry(MemoryStore()), LocaleRegistry())
    return HandlerRegistry(compiler, events)


class TestRenderTemplate:
    def test_caught_and_formatted(self):
        context = SimpleNamespace(caught=["5 march 2012"], formatted=["05/03/2012"])
        assert render_template("%_0% is %^0%", context) == "5 march 2012 is 05/03/2012"

    def test_missing_index_is_empty(self):
        context = SimpleNamespace(caught=[], formatted=[])
        assert render_template("[%_3%]", context) == "[]"


class TestHandlerRegistry:
    def test_register_callable(self):
        reg = _registry()
        handler = reg.register("Hi", lambda ctx: "Hello")
        assert handler.source == "Hi"
        assert handler.origin == ORIGIN_HOST
        assert handler.catchers == ()
        assert "Hi" in reg
        assert len(reg) == 1

    def test_register_template(self):
        reg = _registry()
        handler = reg.register("I am {integer}", "You are %_0%")
        assert handler.origin == ORIGIN_TEMPLATE
        assert handler.body == "You are %_0%"
        context = SimpleNamespace(caught=["30"], formatted=["30"])
        assert handler.action(context) == "You are 30"

    def test_duplicate(self):
        reg = _registry()
        first = reg.register("Hi", lambda ctx: "a")
        with pytest.raises(DuplicateName):
            reg.register("Hi", lambda ctx: "b")
        assert reg.handlers == [first]

    def test_bad_action(self):
        reg = _registry()
        with pytest.raises(InvalidValue):
            reg.register("Hi", 42)
        assert len(reg) == 0

    def test_unknown_catcher_registers_nothing(self):
        reg = _registry()
        with pytest.raises(UnknownCatcher):
            reg.register("I like {planet}", "ok")
        assert "I like {planet}" not in reg

    def test_help_count_must_match(self):
        reg = _registry()
        with pytest.raises(InvalidValue):
            reg.register("from {date} to {date}", "ok", help_texts=["start"])
        assert len(reg) == 0

    def test_help_about(self):
        reg = _registry()
        reg.register("I want {integer} {*}", "ok", help_texts=["how many", "what"])
        assert reg.help_about("I want {integer} {*}") == "I want [how many] [what]"

    def test_help_about_bare_wildcard(self):
        reg = _registry()
        reg.register("Say *", "ok", help_texts=["thing"])
        assert reg.help_about("Say *") == "Say [thing]"

    def test_help_about_nested_regex(self):
        reg = _registry()
        reg.register(r"Code {#\d{2}} for {*}", "ok", help_texts=["two digits", "who"])
        assert reg.help_about(r"Code {#\d{2}} for {*}") == "Code [two digits] for [who]"

    def test_help_about_without_help(self):
        reg = _registry()
        reg.register("Hi", "Hello")
        assert reg.help_about("Hi") is None

    def test_help_about_unknown(self):
        with pytest.raises(UnknownCell):
            _registry().help_about("nope")

    def test_order_kept(self):
        reg = _registry()
        reg.register("b", "1")
        reg.register("a", "2")
        assert [h.source for h in reg] == ["b", "a"]

    def test_understood_event(self):
        events = EventBus()
        seen = []
        events.when("understood", lambda handler: seen.append(handler.source))
        reg = _registry(events)
        reg.register("Hi", "Hello")
        assert seen == ["Hi"]

    def test_reset(self):
        reg = _registry()
        reg.register("Hi", "Hello")
        reg.reset()
        assert len(reg) == 0
        reg.register("Hi", "Hello again")

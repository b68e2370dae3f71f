"""Tests for the handler pattern compiler."""

from __future__ import annotations

import pytest

from dialogue.catchers import CatcherRegistry
from dialogue.errors import InvalidPattern, InvalidValue, UnknownCatcher
from dialogue.locales import LocaleRegistry
from dialogue.memory import MemoryStore
from dialogue.patterns import TOLERANT_GROUP, PatternCompiler, LiteralText, Placeholder, split_pattern


def _compiler() -> PatternCompiler:
    return PatternCompiler(CatcherRegistry(MemoryStore()), LocaleRegistry())


class TestSplitPattern:
    def test_literals_and_placeholders(self):
        assert split_pattern("I am {integer} years old") == [
            LiteralText("I am "),
            Placeholder("integer"),
            LiteralText(" years old"),
        ]

    def test_bare_wildcard(self):
        assert split_pattern("Hi *") == [LiteralText("Hi "), Placeholder("*")]

    def test_nested_braces(self):
        assert split_pattern(r"code {#\d{2}}") == [LiteralText("code "), Placeholder(r"#\d{2}")]

    def test_unbalanced_brace_is_literal(self):
        assert split_pattern("a { b") == [LiteralText("a { b")]


class TestStrictCompilation:
    def test_anchored_and_case_insensitive(self):
        cp = _compiler().compile("Hi")
        assert cp.regex.match("hi")
        assert cp.regex.match("Hi!")
        assert not cp.regex.match("Hi there")
        assert not cp.regex.match("Oh Hi")

    def test_spaces_are_flexible(self):
        cp = _compiler().compile("good morning")
        assert cp.regex.match("good    morning")
        assert not cp.regex.match("goodmorning")

    def test_trailing_question_mark_optional(self):
        cp = _compiler().compile("How are you?")
        assert cp.regex.match("How are you")
        assert cp.regex.match("How are you ?")
        assert cp.regex.match("how are you??")

    def test_trailing_dot_optional(self):
        cp = _compiler().compile("Bye.")
        assert cp.regex.match("Bye")
        assert cp.regex.match("Bye...")

    def test_metacharacters_escaped(self):
        cp = _compiler().compile("1+1 (easy)")
        assert cp.regex.match("1+1 (easy)")
        assert not cp.regex.match("11 easy")

    def test_catcher_groups_in_order(self):
        cp = _compiler().compile("from {date} at {short_time}")
        assert cp.catchers == ("date", "short_time")
        assert cp.group_count == 2
        m = cp.regex.match("from 5 march 2012 at 9:45")
        assert m.groups() == ("5 march 2012", "9:45")

    def test_wildcards(self):
        cp = _compiler().compile("My name is {*}")
        assert cp.catchers == ("*",)
        assert cp.regex.match("My name is Ada Lovelace").group(1) == "Ada Lovelace"

    def test_alternatives(self):
        cp = _compiler().compile("I {?love|like} tea")
        assert cp.catchers == ("?",)
        assert cp.regex.match("I love tea").group(1) == "love"
        assert not cp.regex.match("I  tea")

    def test_optional_single_alternative(self):
        cp = _compiler().compile("{?please }help")
        assert cp.regex.match("please help")
        assert cp.regex.match("help")

    def test_optional_alternative_list(self):
        cp = _compiler().compile("say{?: hi| hello}")
        assert cp.regex.match("say hello")
        assert cp.regex.match("say")

    def test_raw_regex(self):
        cp = _compiler().compile(r"code {#[A-Z]\d{2}}")
        assert cp.catchers == ("#",)
        assert cp.regex.match("code B12").group(1) == "B12"
        assert not cp.regex.match("code B1")

    def test_unknown_catcher(self):
        with pytest.raises(UnknownCatcher):
            _compiler().compile("I like {planet}")

    def test_bad_raw_regex(self):
        with pytest.raises(InvalidPattern):
            _compiler().compile("bad {#[a-}")

    def test_empty_pattern(self):
        with pytest.raises(InvalidValue):
            _compiler().compile("  ")

    def test_locale_substitution(self):
        catchers = CatcherRegistry(MemoryStore())
        locales = LocaleRegistry()
        locales.add_pattern("en", ["'d_", "_would_"])
        cp = PatternCompiler(catchers, locales).compile("I would like {*}")
        assert cp.regex.match("I'd like tea")
        assert cp.regex.match("I would like tea")

    def test_fragment_resolved_at_compile_time(self):
        memory = MemoryStore()
        compiler = PatternCompiler(CatcherRegistry(memory), LocaleRegistry())
        cp = compiler.compile("at {short_time}")
        memory.learn("HOURS_NAME", "heures")
        assert cp.regex.match("at 9 hours 5")
        assert not cp.regex.match("at 9 heures 5")


class TestTolerantCompilation:
    @pytest.mark.parametrize("pattern", [
        "{integer}",
        "between {date} and {date}",
        "at {short_time} or {time}, mail {email}",
    ])
    def test_group_per_catcher(self, pattern):
        compiler = _compiler()
        strict = compiler.compile(pattern)
        tolerant = compiler.compile(pattern, tolerant=True)
        assert tolerant.group_count == len(strict.catchers)
        assert tolerant.catchers == strict.catchers
        assert tolerant.regex.pattern.count(TOLERANT_GROUP) == len(strict.catchers)

    def test_tolerant_accepts_wrong_values(self):
        strict, tolerant = _compiler().compile_pair("I was born on {date}")
        assert tolerant.regex.match("I was born on yesterday")
        assert not strict.regex.match("I was born on yesterday")

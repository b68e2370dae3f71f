"""Tests for running LIS scripts against an engine."""

from __future__ import annotations

import random
import textwrap

import pytest

from dialogue.dispatcher import DispatchContext, OUTCOME_SILENT
from dialogue.engine import Engine
from dialogue.errors import (
    DuplicateName,
    IndexOutOfRange,
    InvalidValue,
    TypeMismatch,
    UnknownCell,
    UnknownFunction,
)


def _run(source: str, engine: Engine | None = None):
    engine = engine or Engine()
    return engine.run_script(textwrap.dedent(source))


class TestExpressions:
    @pytest.mark.parametrize("source, expected", [
        ("return 1 + 2 * 3", 7),
        ("return (1 + 2) * 3", 9),
        ("return 7 / 2", 3.5),
        ("return 7 % 3", 1),
        ("return -2 - 3", -5),
        ('return "a" + 1', "a1"),
        ('return "3" = 3', True),
        ('return "3" !== 3', True),
        ('return "abc" is "abc"', True),
        ('return "abc" isnt "abd"', True),
        ("return nothing = nothing", True),
        ('return nothing or "x"', "x"),
        ("return 0 and 5", 0),
        ('return "b" > "a"', True),
        ('return "10" > 9', True),
        ("return not 0", True),
        ("return [1, 2] + [3]", [1, 2, 3]),
        ("return [4, 5][1]", 5),
        ('return "abc"[last]', "c"),
        ("return [1][3]", None),
    ])
    def test_values(self, source, expected):
        assert _run(source) == expected

    def test_division_by_zero(self):
        with pytest.raises(InvalidValue):
            _run("return 1 / 0")

    def test_bad_number(self):
        with pytest.raises(InvalidValue):
            _run('return "abc" * 2')


class TestBuiltins:
    @pytest.mark.parametrize("source, expected", [
        ('len("abc")', 3),
        ("len([1, 2])", 2),
        ('upper("abc")', "ABC"),
        ('lower("ABC")', "abc"),
        ('trim("  a ")', "a"),
        ("str(true)", "true"),
        ("str(2.0)", "2"),
        ('int("42")', 42),
        ('float("2.5")', 2.5),
        ("round(2.5)", 3),
        ("round(-2.5)", -3),
        ("round(1.25, 1)", 1.3),
        ("floor(2.7)", 2),
        ("ceil(2.1)", 3),
        ("abs(-3)", 3),
        ("min(3, [1, 2])", 1),
        ("max(3, [1, 7])", 7),
        ('join(["a", "b"], "-")', "a-b"),
        ('split("a,b")', ["a", "b"]),
        ("contains([1, 2], 2)", True),
        ('contains([1, 2], "2")', False),
        ('contains("hello", "ell")', True),
        ('standard("5 march 2012", "date")', "05/03/2012"),
        ('knows("HOURS_NAME")', True),
        ('islist("HOURS_NAME")', False),
    ])
    def test_calls(self, source, expected):
        assert _run("return " + source) == expected

    def test_random_uses_engine_rng(self):
        first = Engine(rng=random.Random(5))
        second = Engine(rng=random.Random(5))
        values = [_run("return random(1, 6)", e) for e in (first, second)]
        assert values[0] == values[1]
        assert 1 <= values[0] <= 6


class TestStatements:
    def test_assign_and_say(self):
        engine = Engine()
        _run("""\
            name = "Ada"
            say "Hello %name%"
            say 1 + 1
        """, engine)
        assert [m.text for m in engine.messages] == ["Hello Ada", "2"]
        assert engine.get("name") == "Ada"

    def test_if_knows_else(self):
        engine = Engine()
        _run("""\
            if knows name
              say "yes"
            else
              say "no"
        """, engine)
        assert [m.text for m in engine.messages] == ["no"]

    def test_if_empty_and_islist(self):
        assert _run("""\
            if empty name
              return "empty"
            return "full"
        """) == "empty"
        assert _run("""\
            list xs of int
            if islist xs
              return "list"
            return "scalar"
        """) == "list"

    def test_store_and_forget(self):
        engine = Engine()
        assert _run("""\
            store 3 to x
            forget x
            return knows("x")
        """, engine) is False

    def test_forget_unknown(self):
        with pytest.raises(UnknownCell):
            _run("forget ghost")

    def test_once(self):
        engine = Engine()
        script = 'once greeted\n  say "first"'
        engine.run_script(script)
        engine.run_script(script)
        assert [m.text for m in engine.messages] == ["first"]
        assert engine.get("greeted") is True


class TestLoops:
    def test_for_range_inclusive(self):
        assert _run("""\
            total = 0
            for $i from 1 to 4
              total = total + $i
            return total
        """) == 10

    def test_for_range_negative_step(self):
        assert _run("""\
            $seen = []
            for $i from 3 to 1 step -1
              $seen[] = $i
            return $seen
        """) == [3, 2, 1]

    def test_zero_step(self):
        with pytest.raises(InvalidValue):
            _run("for $i from 1 to 3 step 0\n  say $i")

    def test_for_each_over_list_cell(self):
        assert _run("""\
            list scores of int = [3, 1, 2]
            sum = 0
            for each $s in scores
              sum = sum + $s
            return sum
        """) == 6

    def test_for_each_over_nothing(self):
        engine = Engine()
        assert _run('for each $x in nothing\n  say "never"\nreturn 1', engine) == 1
        assert engine.messages == []


class TestLists:
    def test_list_statements(self):
        engine = Engine()
        result = _run("""\
            list scores of int = [3, 1, 2]
            sort scores
            push 9 to scores
            push 0 to scores at 0
            scores[] = 7
            scores[last] = 8
            return scores
        """, engine)
        assert result == [0, 2, 3, 9, 8]
        assert engine.memory.list_type("scores") == "integer"

    def test_sort_desc_and_reverse(self):
        assert _run("""\
            list xs of int = [1, 3, 2]
            sort xs desc
            return xs
        """) == [3, 2, 1]
        assert _run("""\
            list xs of string = ["a", "b"]
            reverse xs
            return xs
        """) == ["b", "a"]

    def test_shuffle_keeps_values(self):
        engine = Engine(rng=random.Random(2))
        result = _run("""\
            list xs of int = [1, 2, 3, 4, 5]
            shuffle xs
            return xs
        """, engine)
        assert sorted(result) == [1, 2, 3, 4, 5]

    def test_type_mismatch(self):
        with pytest.raises(TypeMismatch):
            _run("list xs of int = [1, \"a\"]")

    def test_ensure_list_keeps_existing(self):
        engine = Engine()
        _run('ensure list tags of string = ["a"]', engine)
        _run('ensure list tags of string = ["b"]', engine)
        assert engine.get_list("tags") == ["a"]

    def test_cell_assigned_a_list(self):
        engine = Engine()
        _run("xs = [1, 2.5]", engine)
        assert engine.get_list("xs") == [1, 2.5]
        assert engine.memory.list_type("xs") == "floating"

    def test_list_interpolation(self):
        engine = Engine()
        _run('list xs of string = ["a", "b"]\nsay "%xs%"', engine)
        assert engine.messages[-1].text == "a;b"

    def test_local_list_items(self):
        assert _run("""\
            $l = [1, 2]
            $l[0] = 9
            $l[last] = 7
            $l[2] = 5
            return $l
        """) == [9, 7, 5]

    def test_local_list_out_of_range(self):
        with pytest.raises(IndexOutOfRange):
            _run("$l = [1]\n$l[5] = 2")


class TestEval:
    def test_eval_shares_locals(self):
        assert _run("""\
            $n = 2
            eval "$n = $n + 1"
            return $n
        """) == 3

    def test_return_ends_only_eval(self):
        assert _run('eval "return 5"\nreturn 1') == 1


class TestHandlers:
    def test_block_handler(self):
        engine = Engine()
        _run("""\
            "I am {integer} years old" =>
              if _0 > 17
                return "Adult, %_0%"
              return "Minor"
        """, engine)
        assert engine.does("I am 30 years old").answer == "Adult, 30"
        assert engine.does("I am 12 years old").answer == "Minor"

    def test_falling_off_the_end_is_silent(self):
        engine = Engine()
        _run("""\
            "Quiet" =>
              x = 1
        """, engine)
        result = engine.does("Quiet")
        assert result.outcome == OUTCOME_SILENT
        assert result.answer is None
        assert engine.get("x") == 1
        assert engine.messages == []

    def test_captured_locals(self):
        engine = Engine()
        _run('$greet = "Hey"\n"Hi" => $greet + "!"', engine)
        assert engine.does("Hi").answer == "Hey!"

    def test_formatted_value(self):
        engine = Engine()
        _run('"Meet at {short_time}" => "See you at %^0%"', engine)
        assert engine.does("Meet at 9 hours 5").answer == "See you at 09:05"

    def test_say_inside_handler(self):
        engine = Engine()
        _run("""\
            "Count" =>
              for $i from 1 to 2
                say $i
              return "done"
        """, engine)
        engine.does("Count")
        assert [m.text for m in engine.messages] == ["1", "2", "done"]


class TestHostBlocks:
    def test_outside_handler(self):
        engine = Engine()
        calls = []
        engine.register_host_block("ping", calls.append)
        _run("{{{ ping }}}", engine)
        assert calls == [None]

    def test_inside_handler(self):
        engine = Engine()
        calls = []
        engine.register_host_block("ping", calls.append)
        _run('"Ping" =>\n  {{{ ping }}}\n  return "pong"', engine)
        assert engine.does("Ping").answer == "pong"
        assert isinstance(calls[0], DispatchContext)
        assert calls[0].request == "Ping"

    def test_unknown_block(self):
        with pytest.raises(UnknownFunction):
            _run("{{{ missing }}}")

    def test_duplicate_block(self):
        engine = Engine()
        engine.register_host_block("ping", print)
        with pytest.raises(DuplicateName):
            engine.register_host_block("ping", print)


class TestLocales:
    def test_locale_statements(self):
        engine = Engine()
        _run("""\
            locale fr: "'d_", "_would_"
            use locale fr
        """, engine)
        assert engine.current_locale == "fr"
        assert engine.texts_equivalent("I'd like", "I would like", "fr")

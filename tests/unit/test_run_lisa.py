"""Tests for the run_lisa command-line runner."""

import json
import textwrap

from scripts.run_lisa import build_engine, main


def _script(tmp_path, source, name="greetings.lis"):
    path = tmp_path / name
    path.write_text(textwrap.dedent(source))
    return path


GREETINGS = """\
    "Hello" => "Hi there!"
    "My name is {*}" =>
      name = _0
      return "Nice to meet you, %name%."
    "Who am I?" =>
      if knows name
        return "You are %name%."
      return "I don't know yet."
"""


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------


class TestMain:
    def test_answers_requests(self, tmp_path, capsys):
        script = _script(tmp_path, GREETINGS)
        rc = main(["--script", str(script), "Hello", "My name is Ada", "Who am I?"])
        assert rc == 0
        out = capsys.readouterr().out.splitlines()
        assert out == [
            "You: Hello",
            "Lisa: Hi there!",
            "You: My name is Ada",
            "Lisa: Nice to meet you, Ada.",
            "You: Who am I?",
            "Lisa: You are Ada.",
        ]

    def test_not_understood_sets_exit_code(self, tmp_path, capsys):
        script = _script(tmp_path, GREETINGS)
        rc = main(["--script", str(script), "Goodbye"])
        assert rc == 1
        assert "Lisa: I didn't understand your request." in capsys.readouterr().out

    def test_no_arguments_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_script_error(self, tmp_path, capsys):
        script = _script(tmp_path, 'x = 1\n    say x\n', name="broken.lis")
        rc = main(["--script", str(script), "Hello"])
        assert rc == 2
        err = capsys.readouterr().err
        assert "At line 2:" in err

    def test_missing_script(self, tmp_path, capsys):
        rc = main(["--script", str(tmp_path / "nope.lis"), "Hello"])
        assert rc == 2
        assert "Could not start the engine" in capsys.readouterr().err

    def test_config_messages(self, tmp_path, capsys):
        config = tmp_path / "lisa.yaml"
        config.write_text(textwrap.dedent("""\
            messages:
              author: "Bot"
              user_author: "Me"
              not_understood: "Eh?"
        """))
        rc = main(["--config", str(config), "anything"])
        assert rc == 1
        assert capsys.readouterr().out.splitlines() == ["Me: anything", "Bot: Eh?"]


# ---------------------------------------------------------------------------
# snapshots
# ---------------------------------------------------------------------------


class TestSnapshots:
    def test_save_then_restore(self, tmp_path, capsys):
        script = _script(tmp_path, GREETINGS)
        state = tmp_path / "state.json"

        assert main(["--script", str(script), "--save-snapshot", str(state),
                     "My name is Grace"]) == 0
        saved = json.loads(state.read_text())
        assert saved["memory"]["name"] == "Grace"

        capsys.readouterr()
        assert main(["--script", str(script), "--snapshot", str(state), "Who am I?"]) == 0
        assert capsys.readouterr().out.splitlines()[-1] == "Lisa: You are Grace."

    def test_build_engine_without_snapshot_file(self, tmp_path):
        script = _script(tmp_path, GREETINGS)
        engine = build_engine(None, [str(script)], str(tmp_path / "missing.json"))
        assert [h.source for h in engine.handlers] == ["Hello", "My name is {*}", "Who am I?"]

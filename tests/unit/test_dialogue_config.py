"""Tests for YAML engine config loading."""

from __future__ import annotations

import textwrap

import pytest

from dialogue.config import DEFAULT_MONTHS, EngineConfig, default_config, load_config
from dialogue.engine import Engine


class TestLoadConfig:
    def test_full_config(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(textwrap.dedent("""\
            messages:
              not_understood: "Sorry?"
              author: "Bot"
            memory_defaults:
              hours_name: "heures"
            history:
              remember_messages: false
            locale:
              current: "fr"
        """))
        config = load_config(path)
        assert config.messages.not_understood == "Sorry?"
        assert config.messages.author == "Bot"
        assert config.messages.syntax_error.startswith("A part of your answer")
        assert config.memory_defaults.hours_name == "heures"
        assert config.memory_defaults.minutes_name == "minutes"
        assert config.history.remember_messages is False
        assert config.locale.current == "fr"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == EngineConfig()

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("messages:\n  colour: blue\n")
        with pytest.raises(TypeError):
            load_config(path)

    def test_defaults(self):
        config = default_config()
        assert config.memory_defaults.months == DEFAULT_MONTHS
        assert config.history.remember_messages is True
        assert config.locale.current == "en"


class TestEngineUsesConfig:
    def test_memory_seeded(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(textwrap.dedent("""\
            memory_defaults:
              hours_name: "h"
        """))
        engine = Engine(load_config(path))
        assert engine.get("HOURS_NAME") == "h"
        assert engine.get("MONTHS") == DEFAULT_MONTHS

    def test_history_not_remembered(self):
        config = EngineConfig()
        config.history.remember_messages = False
        engine = Engine(config)
        message = engine.say("hello")
        assert message.id == 0
        assert engine.messages == []

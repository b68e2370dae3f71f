"""Engine config — default answers, memory seeds and history settings.

Loads YAML config into dataclasses.  Missing sections fall back to defaults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_MONTHS = (
    "january,february,march,april,may,june,july,"
    "august,september,october,november,december"
)


@dataclass
class MessagesConfig:
    """Answers used when a request can't be served by a handler."""
    syntax_error: str = "A part of your answer is not valid. Please check it."
    not_understood: str = "I didn't understand your request."
    action_failed: str = "Sorry, I encountered a problem. Please try again."
    author: str = "Lisa"
    user_author: str = "You"


@dataclass
class MemoryDefaults:
    """Cells learnt when an engine starts (read by the time and date catchers)."""
    hours_name: str = "hours"
    minutes_name: str = "minutes"
    seconds_name: str = "seconds"
    months: str = DEFAULT_MONTHS


@dataclass
class HistoryConfig:
    """Message and request history settings."""
    remember_messages: bool = True


@dataclass
class LocaleConfig:
    """Locale used for handler compilation."""
    current: str = "en"


@dataclass
class EngineConfig:
    """Top-level engine configuration."""
    messages: MessagesConfig = field(default_factory=MessagesConfig)
    memory_defaults: MemoryDefaults = field(default_factory=MemoryDefaults)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    locale: LocaleConfig = field(default_factory=LocaleConfig)


def load_config(path: str | Path) -> EngineConfig:
    """Parse a YAML file into an EngineConfig.

    Missing sections are filled with defaults.
    """
    path = Path(path)
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}

    messages_raw = raw.get("messages", {})
    memory_raw = raw.get("memory_defaults", {})
    history_raw = raw.get("history", {})
    locale_raw = raw.get("locale", {})

    logger.debug("Loaded engine config from %s (sections: %s)", path, sorted(raw))

    return EngineConfig(
        messages=MessagesConfig(**messages_raw),
        memory_defaults=MemoryDefaults(**memory_raw),
        history=HistoryConfig(**history_raw),
        locale=LocaleConfig(**locale_raw),
    )


def default_config() -> EngineConfig:
    """Return an EngineConfig with all defaults."""
    return EngineConfig()

"""Engine — one dialogue engine instance and the API the host talks to.

An engine owns its memory, catcher and locale registries, handlers, history
and event hooks; nothing is shared between engines.  It is synchronous and
holds no locks: share an engine across threads only behind an external lock.
Actions may call ``does()`` again while a request is being served.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Callable

from dialogue.catchers import (
    HOURS_CELL,
    MINUTES_CELL,
    MONTHS_CELL,
    SECONDS_CELL,
    Catcher,
    CatcherRegistry,
)
from dialogue.config import EngineConfig, default_config
from dialogue.dispatcher import DispatchContext, Dispatcher, DispatchResult
from dialogue.errors import DuplicateName, InvalidName
from dialogue.events import EventBus, EventHook
from dialogue.handlers import Handler, HandlerRegistry
from dialogue.history import History, Message
from dialogue.locales import LocalePattern, LocaleRegistry
from dialogue.memory import MemoryStore
from dialogue.patterns import PatternCompiler
from dialogue.snapshot import EngineSnapshot, export_state, restore_state
from lis.compiler import CompiledProgram, ScriptCompiler, StepObserver
from lis.expressions import Scope
from lis.interpreter import Frame, Interpreter

logger = logging.getLogger(__name__)

HostBlock = Callable[[DispatchContext | None], Any]


class Engine:
    """Rule-based dialogue engine: handlers, typed memory and LIS scripts."""

    def __init__(self, config: EngineConfig | None = None, rng: random.Random | None = None) -> None:
        self.config = config or default_config()
        self.events = EventBus()
        self.memory = MemoryStore(self.events, rng)
        self.catchers = CatcherRegistry(self.memory)
        self.locales = LocaleRegistry(self.config.locale.current)
        self.patterns = PatternCompiler(self.catchers, self.locales)
        self.handlers = HandlerRegistry(self.patterns, self.events)
        self.history = History(self.config.history.remember_messages)
        self.dispatcher = Dispatcher(
            self.handlers,
            self.memory,
            self.catchers,
            self.history,
            self.events,
            self.config.messages,
            engine=self,
        )
        self.interpreter = Interpreter(self)
        self.host_blocks: dict[str, HostBlock] = {}

        defaults = self.config.memory_defaults
        self.memory.learn(HOURS_CELL, defaults.hours_name)
        self.memory.learn(MINUTES_CELL, defaults.minutes_name)
        self.memory.learn(SECONDS_CELL, defaults.seconds_name)
        self.memory.learn(MONTHS_CELL, defaults.months)

    # -- catchers --------------------------------------------------------------

    def register_catcher(self, name: str, regex: str) -> Catcher:
        return self.catchers.register(name, regex)

    def has_catcher(self, name: str) -> bool:
        return self.catchers.has(name)

    # -- handlers ----------------------------------------------------------------

    def register_handler(
        self,
        pattern: str,
        action: Callable[[DispatchContext], Any] | str,
        help_texts: list[str] | None = None,
        store: dict[str, str] | None = None,
        *,
        origin: str | None = None,
        body: str | None = None,
    ) -> Handler:
        """Register a handler.  *action* is a callable or an answer template
        (``"Hello %_0%"``)."""
        return self.handlers.register(pattern, action, help_texts, store, origin=origin, body=body)

    def help_about(self, pattern: str) -> str | None:
        return self.handlers.help_about(pattern)

    # -- requests ----------------------------------------------------------------

    def does(self, text: str, display: bool = True) -> DispatchResult:
        """Answer *text*; the result carries the outcome and matched handler.
        ``answer`` is ``None`` when the action suppressed its output."""
        return self.dispatcher.does(text, display)

    def dispatch(self, text: str, display: bool = True) -> str:
        """Answer *text* and return the answer alone (``""`` when suppressed)."""
        return self.does(text, display).answer or ""

    def say(self, text: str, html: bool = False) -> Message:
        return self.dispatcher.say(text, html)

    @property
    def messages(self) -> list[Message]:
        return self.history.messages

    # -- memory ------------------------------------------------------------------

    def learn(self, cell: str, value: Any) -> None:
        self.memory.learn(cell, value)

    def learn_list(self, cell: str, values: list[Any], type_name: str) -> None:
        self.memory.learn_list(cell, values, type_name)

    def forget(self, cell: str) -> Any:
        return self.memory.forget(cell)

    def knows(self, cell: str) -> bool:
        return self.memory.knows(cell)

    def get(self, cell: str) -> Any:
        return self.memory.get(cell)

    def get_list(self, cell: str) -> list[Any] | None:
        return self.memory.get_list(cell)

    def push_list_value(self, cell: str, value: Any, index: int | None = None) -> None:
        self.memory.push_list_value(cell, value, index)

    def sort_list(self, cell: str, assign: bool = False, ascending: bool = True) -> list[Any]:
        """Sorted copy of list *cell*; with *assign* the cell is updated too."""
        return self.memory.sort_list(cell, assign, ascending)

    def shuffle_list(self, cell: str, assign: bool = False) -> list[Any]:
        return self.memory.shuffle_list(cell, assign)

    def reverse_list(self, cell: str, assign: bool = False) -> list[Any]:
        return self.memory.reverse_list(cell, assign)

    def is_list(self, cell: str) -> bool:
        return self.memory.is_list(cell)

    def get_cell(self, cell: str) -> Any:
        return self.memory.get_cell(cell)

    # -- locales -------------------------------------------------------------------

    def add_locale_pattern(self, locale: str, variants: list[str]) -> LocalePattern:
        return self.locales.add_pattern(locale, variants)

    def use_locale(self, locale: str) -> None:
        self.locales.use(locale)

    @property
    def current_locale(self) -> str:
        return self.locales.current

    def translate(self, text: str, locale: str | None = None) -> str:
        return self.locales.translate(text, locale)

    def texts_equivalent(self, left: str, right: str, locale: str | None = None) -> bool:
        return self.locales.texts_equivalent(left, right, locale)

    # -- scripts -------------------------------------------------------------------

    def compile_script(
        self,
        source: str,
        beautify: bool = False,
        keep_comments: bool = False,
        on_step: StepObserver | None = None,
    ) -> CompiledProgram:
        return ScriptCompiler(Scope()).compile(source, beautify, keep_comments, on_step)

    def execute(self, program: CompiledProgram) -> Any:
        return self.interpreter.run(program, Frame())

    def run_script(self, source: str, on_step: StepObserver | None = None) -> Any:
        """Compile and run *source*; return the value of a top-level ``return``."""
        program = self.compile_script(source, on_step=on_step)
        logger.info("Running LIS script (%d lines)", program.line_count)
        return self.execute(program)

    def register_host_block(self, name: str, block: HostBlock) -> None:
        """Make ``{{{ name }}}`` in scripts call *block* with the current
        request context (``None`` outside handlers)."""
        if not name or not isinstance(name, str):
            raise InvalidName("host block", name)
        if name in self.host_blocks:
            raise DuplicateName("host block", name)
        self.host_blocks[name] = block

    # -- events and state ------------------------------------------------------------

    def when(self, event: str, hook: EventHook | None = None) -> EventHook:
        return self.events.when(event, hook)

    def export_state(self) -> EngineSnapshot:
        return export_state(self)

    def restore_state(self, snapshot: EngineSnapshot | dict[str, Any],
                      actions: dict[str, Callable[..., Any]] | None = None) -> None:
        restore_state(self, snapshot, actions)

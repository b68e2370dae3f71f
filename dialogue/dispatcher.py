"""Request dispatcher — picks the handler of a request and runs its action.

Handlers are scanned in registration order against their tolerant regex; the
first hit is selected and re-tested against its strict regex.  A request
that has the handler's shape but not its grammar (``"5 march 20x2"`` against
``"{date}"``) gets the syntax-error answer instead of falling through to a
later handler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from dialogue.catchers import CatcherRegistry
from dialogue.config import MessagesConfig
from dialogue.errors import DispatchSyntaxError, NoHandlerMatched
from dialogue.events import EventBus
from dialogue.handlers import Handler, HandlerRegistry, render_template
from dialogue.history import History, Message, RequestRecord
from dialogue.logging import get_metrics_collector, log_dispatch_event
from dialogue.memory import MemoryStore
from dialogue.standard import get_standard

logger = logging.getLogger(__name__)

SYNTAX_ERROR_CELL = "REQUEST_SYNTAX_ERROR"
MISUNDERSTOOD_CELL = "MISUNDERSTOOD_ERROR"

OUTCOME_ANSWERED = "answered"
OUTCOME_SILENT = "silent"
OUTCOME_SYNTAX_ERROR = "syntax_error"
OUTCOME_NOT_UNDERSTOOD = "not_understood"


@dataclass
class DispatchContext:
    """What an action receives for the request it serves."""

    request: str
    raw_request: str
    caught: list[Any]
    formatted: list[Any]
    handler: Handler
    display: bool = True
    engine: Any = None

    def say(self, text: str, html: bool = False) -> None:
        """Show an extra message while the action runs."""
        if self.engine is not None:
            self.engine.say(text, html=html)


@dataclass
class DispatchResult:
    """Outcome of dispatching one request."""

    request: str
    outcome: str
    answer: str | None = None
    html: bool = False
    handler: str | None = None
    caught: list[Any] = field(default_factory=list)
    formatted: list[Any] = field(default_factory=list)

    @property
    def understood(self) -> bool:
        return self.outcome in (OUTCOME_ANSWERED, OUTCOME_SILENT)


class Dispatcher:
    """Runs requests against a handler registry."""

    def __init__(
        self,
        handlers: HandlerRegistry,
        memory: MemoryStore,
        catchers: CatcherRegistry,
        history: History,
        events: EventBus,
        messages: MessagesConfig | None = None,
        engine: Any = None,
    ) -> None:
        self.handlers = handlers
        self.memory = memory
        self.catchers = catchers
        self.history = history
        self.events = events
        self.messages = messages or MessagesConfig()
        self.engine = engine

    # -- selection ---------------------------------------------------------

    def select(self, request: str) -> tuple[Handler, list[str]]:
        """Return the handler serving *request* and the captured texts.

        Raises DispatchSyntaxError when the first loosely matching handler
        rejects the exact request, NoHandlerMatched when none matches.
        """
        for handler in self.handlers:
            if handler.tolerant.regex.match(request) is None:
                continue
            strict = handler.strict.regex.match(request)
            if strict is None:
                raise DispatchSyntaxError(request, handler.source)
            return handler, list(strict.groups())
        raise NoHandlerMatched(request)

    # -- dispatch ----------------------------------------------------------

    def does(self, text: str, display: bool = True) -> DispatchResult:
        """Answer *text*.  Never raises for requests nobody understands."""
        request = text.strip()
        try:
            handler, caught = self.select(request)
        except DispatchSyntaxError as exc:
            answer = self._error_answer(SYNTAX_ERROR_CELL, self.messages.syntax_error)
            return self._finish(
                DispatchResult(request, OUTCOME_SYNTAX_ERROR, answer, handler=exc.handler),
                display,
            )
        except NoHandlerMatched:
            answer = self._error_answer(MISUNDERSTOOD_CELL, self.messages.not_understood)
            return self._finish(DispatchResult(request, OUTCOME_NOT_UNDERSTOOD, answer), display)

        formatted = [
            get_standard(value, catcher, self.catchers)
            for value, catcher in zip(caught, handler.catchers)
        ]
        context = DispatchContext(
            request=request,
            raw_request=text,
            caught=caught,
            formatted=formatted,
            handler=handler,
            display=display,
            engine=self.engine,
        )

        value = handler.action(context)
        for cell, template in handler.store.items():
            self.memory.learn(cell, render_template(template, context))

        answer, html = self._coerce(value, handler)
        outcome = OUTCOME_SILENT if answer is None else OUTCOME_ANSWERED
        result = DispatchResult(
            request, outcome, answer, html=html, handler=handler.source,
            caught=caught, formatted=formatted,
        )
        self._finish(result, display)

        if answer is not None:
            record = self.history.add_request(RequestRecord(
                request=request,
                handler=handler.source,
                caught=list(caught),
                formatted=list(formatted),
                answer=answer,
            ))
            self.events.emit("did", record, answer)
        return result

    def say(self, text: str, html: bool = False) -> Message:
        """Emit an engine message."""
        message = self.history.add_message(self.messages.author, text, html=html)
        self.events.emit("message", message)
        return message

    # -- helpers -----------------------------------------------------------

    def _coerce(self, value: Any, handler: Handler) -> tuple[str | None, bool]:
        if value is False:
            return None, False
        if isinstance(value, str):
            return value, False
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value), False
        if hasattr(value, "__html__"):
            return str(value.__html__()), True
        logger.warning("Handler '%s' returned %s instead of an answer",
                       handler.source, type(value).__name__, extra={"handler": handler.source})
        return self.messages.action_failed, False

    def _error_answer(self, cell: str, default: str) -> str:
        value = self.memory.get(cell)
        return value if isinstance(value, str) else default

    def _finish(self, result: DispatchResult, display: bool) -> DispatchResult:
        if display and result.answer is not None:
            self.say(result.answer, html=result.html)
        get_metrics_collector().record_dispatch(
            result.outcome, result.handler if result.understood else None,
        )
        log_dispatch_event({
            "request": result.request,
            "handler": result.handler,
            "outcome": result.outcome,
        })
        return result

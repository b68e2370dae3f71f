"""Handler registry — compiled handler patterns bound to their actions.

Handlers are kept in registration order; that order is the dispatch order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from dialogue.errors import DuplicateName, InvalidValue, UnknownCell
from dialogue.events import EventBus
from dialogue.patterns import CompiledPattern, PatternCompiler, Placeholder, split_pattern

logger = logging.getLogger(__name__)

Action = Callable[[Any], Any]

ORIGIN_TEMPLATE = "template"
ORIGIN_SCRIPT = "script"
ORIGIN_HOST = "host"

_TEMPLATE_REF_RE = re.compile(r"%([_^])(\d+)%")


@dataclass
class Handler:
    """A registered handler."""

    source: str
    strict: CompiledPattern
    tolerant: CompiledPattern
    action: Action
    help_texts: tuple[str, ...] | None = None
    store: dict[str, str] = field(default_factory=dict)
    origin: str = ORIGIN_HOST
    body: str | None = None  # template text or script block for rebuildable origins

    @property
    def catchers(self) -> tuple[str, ...]:
        return self.strict.catchers


def render_template(template: str, context: Any) -> str:
    """Expand ``%_N%`` (caught) and ``%^N%`` (standard form) references."""

    def _ref(m: re.Match[str]) -> str:
        values = context.caught if m.group(1) == "_" else context.formatted
        index = int(m.group(2))
        if index >= len(values) or values[index] is None:
            return ""
        return str(values[index])

    return _TEMPLATE_REF_RE.sub(_ref, template)


def template_action(template: str) -> Action:
    """Action answering *template* with the request's caught values expanded."""
    return lambda context: render_template(template, context)


class HandlerRegistry:
    """Registry of compiled handlers, keyed by their source pattern."""

    def __init__(self, compiler: PatternCompiler, events: EventBus | None = None) -> None:
        self.compiler = compiler
        self.events = events or EventBus()
        self._handlers: list[Handler] = []
        self._by_source: dict[str, Handler] = {}

    def register(
        self,
        pattern: str,
        action: Action | str,
        help_texts: list[str] | None = None,
        store: dict[str, str] | None = None,
        *,
        origin: str | None = None,
        body: str | None = None,
        locale: str | None = None,
    ) -> Handler:
        """Compile *pattern* and bind it to *action*.

        A string action is an answer template.  Nothing is registered if the
        pattern, the help texts or the action are invalid.
        """
        if pattern in self._by_source:
            raise DuplicateName("handler", pattern)

        if isinstance(action, str):
            body = action
            origin = origin or ORIGIN_TEMPLATE
            action = template_action(action)
        elif not callable(action):
            raise InvalidValue(f"Illegal action for handler '{pattern}', must be callable or a string")

        strict, tolerant = self.compiler.compile_pair(pattern, locale)

        if help_texts is not None:
            if not isinstance(help_texts, (list, tuple)):
                raise InvalidValue(f"Help texts for handler '{pattern}' must be a list")
            if len(help_texts) != len(strict.catchers):
                raise InvalidValue(
                    f"Handler '{pattern}' has {len(strict.catchers)} catchers "
                    f"but {len(help_texts)} help texts"
                )
            if not all(isinstance(t, str) for t in help_texts):
                raise InvalidValue(f"Illegal help text given for handler '{pattern}'")
            help_texts = tuple(help_texts)

        handler = Handler(
            source=pattern,
            strict=strict,
            tolerant=tolerant,
            action=action,
            help_texts=help_texts,
            store=dict(store or {}),
            origin=origin or ORIGIN_HOST,
            body=body,
        )
        self._handlers.append(handler)
        self._by_source[pattern] = handler
        logger.info("Registered handler: %s (catchers=%s)", pattern, list(strict.catchers),
                    extra={"handler": pattern})
        self.events.emit("understood", handler)
        return handler

    def get(self, pattern: str) -> Handler | None:
        return self._by_source.get(pattern)

    def __contains__(self, pattern: str) -> bool:
        return pattern in self._by_source

    def __iter__(self):
        return iter(list(self._handlers))

    def __len__(self) -> int:
        return len(self._handlers)

    @property
    def handlers(self) -> list[Handler]:
        return list(self._handlers)

    def help_about(self, pattern: str) -> str | None:
        """Pattern with each placeholder replaced by ``[help text]``, or
        ``None`` if the handler has no help."""
        handler = self._by_source.get(pattern)
        if handler is None:
            raise UnknownCell(pattern, f"Unknown handler '{pattern}'")
        if not handler.help_texts:
            return None
        texts = iter(handler.help_texts)
        out = []
        for part in split_pattern(pattern):
            if isinstance(part, Placeholder):
                out.append("[" + next(texts) + "]")
            else:
                out.append(part.text)
        return "".join(out)

    def reset(self) -> None:
        """Drop every handler."""
        self._handlers.clear()
        self._by_source.clear()

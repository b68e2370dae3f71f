"""Event hooks — synchronous observers for messages, dispatches and memory changes.

Hooks are meant for observation and persistence; the engine never depends on
them.  Every hook registered for an event is called in registration order and
exceptions raised by a hook propagate to the caller of the operation that
fired the event.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from dialogue.errors import UnknownEvent

logger = logging.getLogger(__name__)

EventHook = Callable[..., Any]

# event name -> arguments passed to the hooks
EVENTS = {
    "message": "(message: Message)",
    "did": "(record: RequestRecord, answer: str)",
    "learnt": "(cell: str, value, index: int | None)",
    "forgot": "(cell: str, previous)",
    "understood": "(handler: Handler)",
}


class EventBus:
    """Named hooks fired synchronously by the engine components."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[EventHook]] = {name: [] for name in EVENTS}

    def when(self, event: str, hook: EventHook | None = None) -> EventHook:
        """Register *hook* for *event* and return it.

        Without *hook* it returns a decorator registering the decorated
        function.
        """
        if event not in self._hooks:
            raise UnknownEvent(event)
        if hook is None:
            return lambda h: self.when(event, h)
        if not callable(hook):
            raise TypeError(f"Hook for event '{event}' must be callable")
        self._hooks[event].append(hook)
        logger.debug("Hook registered for event '%s'", event)
        return hook

    def remove(self, event: str, hook: EventHook) -> None:
        if event not in self._hooks:
            raise UnknownEvent(event)
        self._hooks[event].remove(hook)

    def has_hooks(self, event: str) -> bool:
        return bool(self._hooks.get(event))

    def emit(self, event: str, *args: Any) -> None:
        if event not in self._hooks:
            raise UnknownEvent(event)
        for hook in list(self._hooks[event]):
            hook(*args)

    def clear(self) -> None:
        for hooks in self._hooks.values():
            hooks.clear()

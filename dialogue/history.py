"""Message and request history."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Message:
    """One message shown in the conversation."""

    id: int
    author: str
    text: str
    html: bool = False
    from_engine: bool = True
    timestamp: str = field(default_factory=_now)


@dataclass
class RequestRecord:
    """A request that reached a handler's action."""

    request: str
    handler: str
    caught: list[Any] = field(default_factory=list)
    formatted: list[Any] = field(default_factory=list)
    answer: str | None = None
    timestamp: str = field(default_factory=_now)


class History:
    """Ordered messages and handled requests.

    With ``remember=False`` messages are numbered and returned but not kept,
    and request records are not kept either.
    """

    def __init__(self, remember: bool = True) -> None:
        self.remember = remember
        self._messages: list[Message] = []
        self._requests: list[RequestRecord] = []
        self._next_id = 0

    def add_message(self, author: str, text: str, *, html: bool = False,
                    from_engine: bool = True) -> Message:
        message = Message(self._next_id, author, text, html=html, from_engine=from_engine)
        self._next_id += 1
        if self.remember:
            self._messages.append(message)
        return message

    def add_request(self, record: RequestRecord) -> RequestRecord:
        if self.remember:
            self._requests.append(record)
        return record

    def message(self, message_id: int) -> Message | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def requests(self) -> list[RequestRecord]:
        return list(self._requests)

    def last_answer(self) -> str | None:
        """Text of the latest engine message."""
        for message in reversed(self._messages):
            if message.from_engine:
                return message.text
        return None

    def export(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "messages": [asdict(m) for m in self._messages],
            "requests": [asdict(r) for r in self._requests],
        }

    def restore(self, messages: list[dict[str, Any]], requests: list[dict[str, Any]]) -> None:
        self._messages = [Message(**m) for m in messages]
        self._requests = [RequestRecord(**r) for r in requests]
        self._next_id = max((m.id for m in self._messages), default=-1) + 1

    def clear(self) -> None:
        self._messages.clear()
        self._requests.clear()
        self._next_id = 0

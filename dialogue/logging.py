"""Structured logging and observability for the dialogue engine.

Provides JSON-structured logging per dispatched request and a small
collector of dispatch metrics.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

# Record attributes copied into the JSON entry when present
_CONTEXT_FIELDS = ("request", "handler", "outcome", "cell", "line", "locale")


# ---------------------------------------------------------------------------
# Structured log formatter
# ---------------------------------------------------------------------------

class StructuredFormatter(logging.Formatter):
    """JSON log formatter carrying the engine's structured context."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _CONTEXT_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])

        return json.dumps(log_entry, default=str)


def setup_structured_logging(level: int = logging.INFO) -> logging.Handler:
    """Configure the root logger to use structured JSON output."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)
    return handler


# ---------------------------------------------------------------------------
# Dispatch logger
# ---------------------------------------------------------------------------

def log_dispatch_event(event: dict[str, Any], logger_name: str = "dialogue.dispatcher") -> None:
    """Emit a structured log entry for one dispatched request."""
    log = logging.getLogger(logger_name)
    outcome = event.get("outcome", "")
    record = log.makeRecord(
        name=logger_name,
        level=logging.INFO if outcome in ("answered", "silent") else logging.WARNING,
        fn="",
        lno=0,
        msg=f"Request {outcome} by handler '{event.get('handler') or '-'}'",
        args=(),
        exc_info=None,
    )
    record.request = event.get("request", "")
    record.handler = event.get("handler")
    record.outcome = outcome
    log.handle(record)


# ---------------------------------------------------------------------------
# Dispatch metrics collector
# ---------------------------------------------------------------------------

@dataclass
class DispatchMetrics:
    """Counts dispatch outcomes and handler usage."""
    _outcomes: dict[str, int] = field(default_factory=dict)
    _handler_hits: dict[str, int] = field(default_factory=dict)
    _compiled_scripts: int = 0
    _compiled_lines: int = 0

    def record_dispatch(self, outcome: str, handler: str | None = None) -> None:
        self._outcomes[outcome] = self._outcomes.get(outcome, 0) + 1
        if handler is not None:
            self._handler_hits[handler] = self._handler_hits.get(handler, 0) + 1

    def record_compilation(self, lines: int) -> None:
        self._compiled_scripts += 1
        self._compiled_lines += lines

    def total_requests(self) -> int:
        return sum(self._outcomes.values())

    def understood_rate(self) -> float:
        """Fraction of requests that reached a handler's action."""
        total = self.total_requests()
        served = self._outcomes.get("answered", 0) + self._outcomes.get("silent", 0)
        return served / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requests": self.total_requests(),
            "outcomes": dict(self._outcomes),
            "understood_rate": round(self.understood_rate(), 4),
            "handler_hits": dict(self._handler_hits),
            "compiled_scripts": self._compiled_scripts,
            "compiled_lines": self._compiled_lines,
        }


# Module-level singleton
_metrics_collector: DispatchMetrics | None = None


def get_metrics_collector() -> DispatchMetrics:
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = DispatchMetrics()
    return _metrics_collector


def reset_metrics_collector() -> None:
    global _metrics_collector
    _metrics_collector = None

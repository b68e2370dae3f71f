"""Engine snapshot — export and restore of memory, registries and handlers.

Host-language actions can't be serialised: a handler registered with a
Python callable is exported by pattern only and its callable must be handed
back to ``restore_state`` through *actions*.  Template and script handlers
are rebuilt from their recorded text.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, Field, ValidationError

from dialogue.errors import DialogueError, SnapshotError
from dialogue.handlers import ORIGIN_HOST, ORIGIN_SCRIPT, ORIGIN_TEMPLATE
from dialogue.memory import TYPES_CELL

if TYPE_CHECKING:
    from dialogue.engine import Engine

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class HandlerRecord(BaseModel):
    source: str
    origin: str = ORIGIN_HOST
    body: str | None = None
    help_texts: list[str] | None = None
    store: dict[str, str] = Field(default_factory=dict)


class MessageRecord(BaseModel):
    id: int
    author: str
    text: str
    html: bool = False
    from_engine: bool = True
    timestamp: str


class RequestEntry(BaseModel):
    request: str
    handler: str
    caught: list[Any] = Field(default_factory=list)
    formatted: list[Any] = Field(default_factory=list)
    answer: str | None = None
    timestamp: str


class EngineSnapshot(BaseModel):
    version: int = SNAPSHOT_VERSION
    memory: dict[str, Any] = Field(default_factory=dict)
    catchers: dict[str, str] = Field(default_factory=dict)
    locales: dict[str, list[list[str]]] = Field(default_factory=dict)
    current_locale: str = "en"
    handlers: list[HandlerRecord] = Field(default_factory=list)
    messages: list[MessageRecord] = Field(default_factory=list)
    requests: list[RequestEntry] = Field(default_factory=list)


def export_state(engine: Engine) -> EngineSnapshot:
    """Capture *engine* as a snapshot."""
    history = engine.history.export()
    return EngineSnapshot(
        memory=engine.memory.dump(),
        catchers=engine.catchers.custom(),
        locales=engine.locales.export(),
        current_locale=engine.locales.current,
        handlers=[
            HandlerRecord(
                source=h.source,
                origin=h.origin,
                body=h.body,
                help_texts=list(h.help_texts) if h.help_texts is not None else None,
                store=dict(h.store),
            )
            for h in engine.handlers
        ],
        messages=history["messages"],
        requests=history["requests"],
    )


def restore_state(
    engine: Engine,
    snapshot: EngineSnapshot | dict[str, Any],
    actions: dict[str, Callable[..., Any]] | None = None,
) -> None:
    """Load *snapshot* into *engine*.

    Catchers are restored first, then locales, memory and handlers, so that
    every handler compiles against the catchers and memory it was written
    for.  Memory and handlers replace the engine's own.

    The whole snapshot is first applied to a scratch engine carrying the
    same config, catchers, locales and host blocks; *engine* is only touched
    once that succeeded, so a failed restore leaves it unchanged.
    """
    if isinstance(snapshot, dict):
        try:
            snapshot = EngineSnapshot.model_validate(snapshot)
        except ValidationError as exc:
            raise SnapshotError(f"Invalid snapshot: {exc}") from exc
    if snapshot.version != SNAPSHOT_VERSION:
        raise SnapshotError(f"Unsupported snapshot version {snapshot.version}")
    actions = actions or {}

    missing = [
        r.source for r in snapshot.handlers
        if r.origin == ORIGIN_HOST and r.source not in actions
    ]
    if missing:
        raise SnapshotError(f"No action given for handlers: {', '.join(missing)}")

    _apply(_scratch_copy(engine), snapshot, actions)
    _apply(engine, snapshot, actions)

    engine.history.restore(
        [m.model_dump() for m in snapshot.messages],
        [r.model_dump() for r in snapshot.requests],
    )
    logger.info("Restored snapshot: %d cells, %d handlers",
                len(snapshot.memory), len(snapshot.handlers))


def _scratch_copy(engine: Engine) -> Engine:
    from dialogue.engine import Engine

    scratch = Engine(engine.config)
    for name, regex in engine.catchers.custom().items():
        scratch.catchers.register(name, regex)
    for locale, patterns in engine.locales.export().items():
        for variants in patterns:
            scratch.locales.add_pattern(locale, variants)
    scratch.locales.use(engine.locales.current)
    scratch.host_blocks = dict(engine.host_blocks)
    return scratch


def _apply(engine: Engine, snapshot: EngineSnapshot,
           actions: dict[str, Callable[..., Any]]) -> None:
    try:
        for name, regex in snapshot.catchers.items():
            existing = engine.catchers.lookup(name)
            if existing is None:
                engine.catchers.register(name, regex)
            elif existing != regex:
                raise SnapshotError(f"Catcher '{name}' already exists with another regex")

        known = engine.locales.export()
        for locale, patterns in snapshot.locales.items():
            for variants in patterns:
                if variants not in known.get(locale, []):
                    engine.locales.add_pattern(locale, variants)
        engine.locales.use(snapshot.current_locale)

        _restore_memory(engine, snapshot.memory)

        engine.handlers.reset()
        for record in snapshot.handlers:
            _restore_handler(engine, record, actions)
    except SnapshotError:
        raise
    except DialogueError as exc:
        raise SnapshotError(f"Snapshot could not be restored: {exc}") from exc


def _restore_memory(engine: Engine, memory: dict[str, Any]) -> None:
    list_types = memory.get(TYPES_CELL) or {}
    engine.memory.clear()
    for cell, value in memory.items():
        if cell == TYPES_CELL:
            continue
        if cell in list_types:
            engine.memory.learn_list(cell, value, list_types[cell])
        else:
            engine.memory.learn(cell, value)


def _restore_handler(engine: Engine, record: HandlerRecord,
                     actions: dict[str, Callable[..., Any]]) -> None:
    if record.origin == ORIGIN_SCRIPT:
        if not record.body:
            raise SnapshotError(f"Script handler '{record.source}' has no source")
        engine.run_script(record.body)
        return

    if record.origin == ORIGIN_TEMPLATE:
        action: Any = record.body or ""
    else:
        action = actions[record.source]
    engine.register_handler(record.source, action, record.help_texts, record.store or None)


def save_snapshot(snapshot: EngineSnapshot, path: Path | str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")


def load_snapshot(path: Path | str) -> EngineSnapshot:
    try:
        return EngineSnapshot.model_validate_json(Path(path).read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise SnapshotError(f"Invalid snapshot file {path}: {exc}") from exc

"""Error types for registration, memory, compilation and dispatch failures."""

from __future__ import annotations


class DialogueError(Exception):
    """Base error for the Lisa dialogue engine."""


class InvalidName(DialogueError):
    """A catcher, cell, locale or event name breaks the naming rules."""

    def __init__(self, kind: str, name: object):
        self.kind = kind
        self.name = name
        super().__init__(f"Illegal {kind} name: {name!r}")


class InvalidValue(DialogueError):
    """A value handed to a registry or the memory is not acceptable."""


class DuplicateName(DialogueError):
    """A catcher or handler is already registered under this name."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind.capitalize()} '{name}' is already registered")


class EmptyRegex(DialogueError):
    """A catcher was registered with a blank regex."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Catcher '{name}' needs a non-empty regex")


class InvalidPattern(DialogueError):
    """A handler pattern produced a regex that does not compile."""

    def __init__(self, pattern: str, message: str):
        self.pattern = pattern
        super().__init__(f"Handler '{pattern}': {message}")


class UnknownCatcher(DialogueError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown catcher '{name}'")


class UnknownFunction(DialogueError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown function '{name}'")


class UnknownLocale(DialogueError):
    def __init__(self, locale: str):
        self.locale = locale
        super().__init__(f"Unknown locale '{locale}'")


class UnknownCell(DialogueError):
    """A memory cell (or list) that does not exist was required."""

    def __init__(self, cell: str, message: str | None = None):
        self.cell = cell
        super().__init__(message or f"Unknown memory cell '{cell}'")


class UnknownEvent(DialogueError):
    def __init__(self, event: str):
        self.event = event
        super().__init__(f"Unknown event '{event}'")


class TypeMismatch(DialogueError):
    """A value does not have the type its cell or list expects."""

    def __init__(self, cell: str, expected: str, index: int | None = None):
        self.cell = cell
        self.expected = expected
        self.index = index
        where = f" at index {index}" if index is not None else ""
        super().__init__(f"Value for '{cell}'{where} is not a valid {expected}")


class IndexOutOfRange(DialogueError):
    def __init__(self, cell: str, index: object, length: int):
        self.cell = cell
        self.index = index
        self.length = length
        super().__init__(
            f"List '{cell}' holds {length} values, can't write at index {index!r}"
        )


class CompileError(DialogueError):
    """A LIS source line could not be compiled."""

    def __init__(self, line: int, text: str, message: str):
        self.line = line
        self.text = text
        self.message = message
        super().__init__(f"At line {line}:\n{text}\n^\n{message}")


class ScriptIndentationError(CompileError):
    """A LIS line is indented deeper than the open blocks allow."""


class DispatchSyntaxError(DialogueError):
    """The request has a handler's loose shape but not its exact grammar."""

    def __init__(self, request: str, handler: str):
        self.request = request
        self.handler = handler
        super().__init__(f"Request '{request}' does not fit handler '{handler}'")


class NoHandlerMatched(DialogueError):
    def __init__(self, request: str):
        self.request = request
        super().__init__(f"No handler understands '{request}'")


class SnapshotError(DialogueError):
    """A snapshot could not be restored."""

"""LIS expression tokenizer and parser.

An expression compiles to a tree of ``lis.nodes`` expression nodes; no
source text in any other language is produced.  Names are resolved while
parsing: ``$local`` must have been assigned earlier in the script, ``_N`` and
``^N`` only exist inside handler bodies, and a call must name a builtin.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from dialogue.errors import DialogueError, UnknownFunction
from lis.builtins import BUILTINS
from lis.nodes import (
    Binary,
    Call,
    Caught,
    Cell,
    Index,
    Last,
    ListLiteral,
    Literal,
    Local,
    Node,
    Text,
    Unary,
)


class ExpressionError(DialogueError):
    """An expression could not be parsed."""


@dataclass
class Token:
    kind: str
    value: str
    col: int


class TokenSpec:
    """Ordered token definitions; keywords precede identifiers."""

    def __init__(self) -> None:
        self.specs = [
            ("STRING",     r'"[^"\\]*(?:\\.[^"\\]*)*"|\'[^\'\\]*(?:\\.[^\'\\]*)*\''),
            ("NUMBER",     r"\d+\.\d+|\d+"),
            ("CAUGHT",     r"[_^]\d+\b"),
            ("LOCAL",      r"\$[A-Za-z_]\w*"),
            ("KW_ISNT",    r"\bisnt\b"),
            ("KW_IS",      r"\bis\b"),
            ("KW_NOT",     r"\bnot\b"),
            ("KW_AND",     r"\band\b"),
            ("KW_OR",      r"\bor\b"),
            ("KW_TRUE",    r"\btrue\b"),
            ("KW_FALSE",   r"\bfalse\b"),
            ("KW_NOTHING", r"\bnothing\b"),
            ("KW_LAST",    r"\blast\b"),
            ("IDENT",      r"[A-Za-z_]\w*"),
            ("OP",         r"!==|==|!=|<=|>=|&&|\|\||[-+*/%<>=!]"),
            ("SYMBOL",     r"[()\[\],]"),
            ("WS",         r"[ \t]+"),
            ("MISMATCH",   r"."),
        ]
        self.regex = re.compile("|".join(f"(?P<{k}>{p})" for k, p in self.specs))


_SPEC = TokenSpec()


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    for m in _SPEC.regex.finditer(text):
        kind = m.lastgroup
        if kind == "WS":
            continue
        if kind == "MISMATCH":
            raise ExpressionError(f"Unexpected character {m.group()!r} at column {m.start() + 1}")
        tokens.append(Token(kind, m.group(), m.start() + 1))
    return tokens


@dataclass
class Scope:
    """Names visible to the expression being compiled."""

    locals: set[str] = field(default_factory=set)
    in_handler: bool = False

    def child(self, in_handler: bool | None = None) -> Scope:
        return Scope(set(self.locals), self.in_handler if in_handler is None else in_handler)


# ---------------------------------------------------------------------------
# String literals
# ---------------------------------------------------------------------------

_ESCAPES = {"n": "\n", "t": "\t"}
_ESCAPE_RE = re.compile(r"\\(.)")
_INTERPOLATION_RE = re.compile(r"%%|%(\$[A-Za-z_]\w*|[_^]\d+|[A-Za-z_]\w*)%")


def unescape(text: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), text)


def string_value(token_text: str) -> str:
    """Plain content of a quoted literal, without interpolation."""
    return unescape(token_text[1:-1])


def parse_string(token_text: str, scope: Scope) -> Node:
    """Quoted literal to a ``Literal`` or, with ``%ref%`` parts, a ``Text``."""
    body = token_text[1:-1]
    parts: list[str | Node] = []
    pos = 0
    for m in _INTERPOLATION_RE.finditer(body):
        if m.start() > pos:
            parts.append(unescape(body[pos:m.start()]))
        if m.group(0) == "%%":
            parts.append("%")
        else:
            parts.append(_reference(m.group(1), scope))
        pos = m.end()
    if pos < len(body):
        parts.append(unescape(body[pos:]))

    if all(isinstance(p, str) for p in parts):
        return Literal("".join(parts))
    return Text(parts)


def _reference(name: str, scope: Scope) -> Node:
    if name.startswith("$"):
        return _local(name, scope)
    if name[0] in "_^" and name[1:].isdigit():
        return _caught(name, scope)
    return Cell(name)


def _local(name: str, scope: Scope) -> Local:
    if name not in scope.locals:
        raise ExpressionError(f"Local variable '{name}' is read before being assigned")
    return Local(name)


def _caught(name: str, scope: Scope) -> Caught:
    if not scope.in_handler:
        raise ExpressionError(f"'{name}' can only be used inside a handler")
    return Caught(int(name[1:]), formatted=name[0] == "^")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

_EQUAL_OPS = {"=": "==", "==": "==", "is": "=="}
_NOT_EQUAL_OPS = {"!": "!=", "!=": "!=", "isnt": "!=", "!==": "!=="}
_ORDER_OPS = ("<", ">", "<=", ">=")


class Parser:
    """Recursive-descent parser over one expression's tokens."""

    def __init__(self, tokens: list[Token], scope: Scope, text: str = "") -> None:
        self.tokens = tokens
        self.scope = scope
        self.text = text
        self.pos = 0

    def parse(self) -> Node:
        if not self.tokens:
            raise ExpressionError("Expression expected")
        node = self.parse_or()
        if self.pos < len(self.tokens):
            tok = self.tokens[self.pos]
            raise ExpressionError(f"Unexpected {tok.value!r} at column {tok.col}")
        return node

    # -- helpers -----------------------------------------------------------

    def peek(self) -> Token | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def peek_value(self, offset: int = 0) -> str | None:
        i = self.pos + offset
        return self.tokens[i].value if i < len(self.tokens) else None

    def advance(self) -> Token:
        tok = self.peek()
        if tok is None:
            raise ExpressionError("Unexpected end of expression")
        self.pos += 1
        return tok

    def expect(self, value: str) -> Token:
        tok = self.advance()
        if tok.value != value:
            raise ExpressionError(f"Expected {value!r}, found {tok.value!r} at column {tok.col}")
        return tok

    # -- grammar -----------------------------------------------------------

    def parse_or(self) -> Node:
        node = self.parse_and()
        while self.peek_value() in ("or", "||"):
            self.advance()
            node = Binary("or", node, self.parse_and())
        return node

    def parse_and(self) -> Node:
        node = self.parse_not()
        while self.peek_value() in ("and", "&&"):
            self.advance()
            node = Binary("and", node, self.parse_not())
        return node

    def parse_not(self) -> Node:
        if self.peek_value() in ("not", "!"):
            self.advance()
            return Unary("not", self.parse_not())
        return self.parse_comparison()

    def parse_comparison(self) -> Node:
        node = self.parse_additive()
        value = self.peek_value()
        if value == "is" and self.peek_value(1) == "not":
            self.pos += 2
            return Binary("!=", node, self.parse_additive())
        if value in _EQUAL_OPS:
            self.advance()
            return Binary(_EQUAL_OPS[value], node, self.parse_additive())
        if value in _NOT_EQUAL_OPS:
            self.advance()
            return Binary(_NOT_EQUAL_OPS[value], node, self.parse_additive())
        if value in _ORDER_OPS:
            self.advance()
            return Binary(value, node, self.parse_additive())
        return node

    def parse_additive(self) -> Node:
        node = self.parse_term()
        while self.peek_value() in ("+", "-"):
            op = self.advance().value
            node = Binary(op, node, self.parse_term())
        return node

    def parse_term(self) -> Node:
        node = self.parse_unary()
        while self.peek_value() in ("*", "/", "%"):
            op = self.advance().value
            node = Binary(op, node, self.parse_unary())
        return node

    def parse_unary(self) -> Node:
        if self.peek_value() == "-":
            self.advance()
            return Unary("-", self.parse_unary())
        return self.parse_postfix()

    def parse_postfix(self) -> Node:
        node = self.parse_primary()
        while self.peek_value() == "[":
            self.advance()
            if self.peek_value() == "last":
                self.advance()
                node = Last(node)
            else:
                node = Index(node, self.parse_or())
            self.expect("]")
        return node

    def parse_primary(self) -> Node:
        tok = self.advance()
        kind = tok.kind

        if kind == "NUMBER":
            return Literal(float(tok.value) if "." in tok.value else int(tok.value))
        if kind == "STRING":
            return parse_string(tok.value, self.scope)
        if kind == "CAUGHT":
            return _caught(tok.value, self.scope)
        if kind == "LOCAL":
            return _local(tok.value, self.scope)
        if kind == "KW_TRUE":
            return Literal(True)
        if kind == "KW_FALSE":
            return Literal(False)
        if kind == "KW_NOTHING":
            return Literal(None)
        if kind == "IDENT":
            if self.peek_value() == "(":
                return self.parse_call(tok.value)
            return Cell(tok.value)
        if tok.value == "[":
            items: list[Node] = []
            if self.peek_value() != "]":
                items.append(self.parse_or())
                while self.peek_value() == ",":
                    self.advance()
                    items.append(self.parse_or())
            self.expect("]")
            return ListLiteral(items)
        if tok.value == "(":
            node = self.parse_or()
            self.expect(")")
            return node
        raise ExpressionError(f"Unexpected {tok.value!r} at column {tok.col}")

    def parse_call(self, name: str) -> Call:
        builtin = BUILTINS.get(name)
        if builtin is None:
            raise UnknownFunction(name)
        self.expect("(")
        args: list[Node] = []
        if self.peek_value() != ")":
            args.append(self.parse_or())
            while self.peek_value() == ",":
                self.advance()
                args.append(self.parse_or())
        self.expect(")")
        if not builtin.min_args <= len(args) <= builtin.max_args:
            raise ExpressionError(
                f"Function '{name}' takes {builtin.min_args} to {builtin.max_args} "
                f"arguments, {len(args)} given"
            )
        return Call(name, args)


def transpile(text: str, scope: Scope | None = None) -> Node:
    """Compile one LIS expression."""
    return Parser(tokenize(text), scope or Scope(), text).parse()

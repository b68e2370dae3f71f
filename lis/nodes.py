"""LIS syntax tree — expression and statement nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


class Node:
    """Base class for every LIS node."""


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass
class Literal(Node):
    value: Any


@dataclass
class ListLiteral(Node):
    items: list[Node]


@dataclass
class Text(Node):
    """String literal with ``%ref%`` interpolations (str parts stay as is)."""
    parts: list[Union[str, Node]]


@dataclass
class Local(Node):
    name: str


@dataclass
class Cell(Node):
    name: str


@dataclass
class Caught(Node):
    index: int
    formatted: bool = False


@dataclass
class Index(Node):
    target: Node
    index: Node


@dataclass
class Last(Node):
    target: Node


@dataclass
class Call(Node):
    name: str
    args: list[Node]


@dataclass
class Unary(Node):
    op: str
    operand: Node


@dataclass
class Binary(Node):
    op: str
    left: Node
    right: Node


# ---------------------------------------------------------------------------
# Assignment targets
# ---------------------------------------------------------------------------

@dataclass
class Target(Node):
    """``$local``, ``cell``, ``x[i]``, ``x[last]`` or ``x[]``."""
    name: str
    local: bool = False
    index: Node | None = None
    last: bool = False
    append: bool = False


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

@dataclass
class Comment(Node):
    text: str


@dataclass
class HostBlock(Node):
    name: str


@dataclass
class HandlerDef(Node):
    pattern: str
    body: list[Node] = field(default_factory=list)
    source: str = ""


@dataclass
class Assign(Node):
    target: Target
    value: Node


@dataclass
class If(Node):
    test: Node
    body: list[Node] = field(default_factory=list)
    orelse: list[Node] | None = None


@dataclass
class Knows(Node):
    cell: str
    negate: bool = False


@dataclass
class Empty(Node):
    value: Node
    negate: bool = False


@dataclass
class IsList(Node):
    cell: str
    negate: bool = False


@dataclass
class Say(Node):
    value: Node


@dataclass
class Return(Node):
    value: Node | None = None


@dataclass
class Store(Node):
    value: Node
    cell: str


@dataclass
class ForRange(Node):
    var: str
    start: Node
    stop: Node
    step: Node | None = None
    body: list[Node] = field(default_factory=list)


@dataclass
class ForEach(Node):
    var: str
    iterable: Node
    body: list[Node] = field(default_factory=list)


@dataclass
class ListDecl(Node):
    cell: str
    type_name: str
    value: Node | None = None
    ensure: bool = False


@dataclass
class Push(Node):
    value: Node
    cell: str
    index: Node | None = None


@dataclass
class ListOp(Node):
    """``sort``, ``shuffle`` or ``reverse`` applied in place."""
    op: str
    cell: str
    ascending: bool = True


@dataclass
class UseLocale(Node):
    locale: str


@dataclass
class LocaleDef(Node):
    locale: str
    variants: list[str]


@dataclass
class Eval(Node):
    value: Node


@dataclass
class Forget(Node):
    cell: str


@dataclass
class Once(Node):
    cell: str
    body: list[Node] = field(default_factory=list)

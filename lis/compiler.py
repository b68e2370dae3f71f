"""LIS script compiler — one statement per line, blocks by indentation.

A block is opened by ``if``, ``else``, ``for``, ``once`` and by a handler
header ending with ``=>``; its statements are indented one level deeper
(two spaces or one tab per level).  The open blocks live on an explicit
stack, and closing a handler body appends an implicit ``return false`` so
that a handler falling off its end answers nothing.

Compilation stops at the first error, raised as ``CompileError`` with the
1-based line number and the offending text.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from dialogue.errors import CompileError, DialogueError, ScriptIndentationError
from dialogue.logging import get_metrics_collector
from lis.expressions import ExpressionError, Scope, string_value, tokenize, transpile
from lis.nodes import (
    Assign,
    Comment,
    Empty,
    Eval,
    ForEach,
    Forget,
    ForRange,
    HandlerDef,
    HostBlock,
    If,
    IsList,
    Knows,
    ListDecl,
    ListOp,
    Literal,
    LocaleDef,
    Node,
    Once,
    Push,
    Return,
    Say,
    Store,
    Target,
    UseLocale,
)

logger = logging.getLogger(__name__)

StepObserver = Callable[[int, int], None]

_NAME = r"[A-Za-z_]\w*"
_LOCAL = r"\$[A-Za-z_]\w*"
_QUOTED = r'"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\''

_COMMENT_RE = re.compile(r"^#\s?(.*)$")
_HOST_BLOCK_RE = re.compile(r"^\{\{\{\s*([A-Za-z_][\w.\-]*)\s*\}\}\}$")
_HANDLER_RE = re.compile(rf"^({_QUOTED})\s*=>\s*(.*)$")
_ASSIGN_RE = re.compile(rf"^(\$?{_NAME})\s*(\[\s*(.*?)\s*\])?\s*=(?!=)\s*(.+)$")
_IF_KNOWS_RE = re.compile(rf"^if\s+(not\s+)?knows\s+({_NAME})$")
_IF_EMPTY_RE = re.compile(r"^if\s+(not\s+)?empty\s+(.+)$")
_IF_ISLIST_RE = re.compile(rf"^if\s+(not\s+)?islist\s+({_NAME})$")
_IF_RE = re.compile(r"^if\s+(.+)$")
_ELSE_RE = re.compile(r"^else$")
_SAY_RE = re.compile(r"^say\s+(.+)$")
_RETURN_RE = re.compile(r"^(?:return|end|die|output)(?:\s+(.+))?$")
_STORE_RE = re.compile(rf"^store\s+(.+?)\s+to\s+({_NAME})$")
_FOR_EACH_RE = re.compile(rf"^for\s+each\s+({_LOCAL})\s+in\s+(.+)$")
_FOR_RANGE_RE = re.compile(
    rf"^for\s+({_LOCAL})\s+(?:from|=)\s+(.+?)\s+to\s+(.+?)(?:\s+step\s+(.+))?$"
)
_LIST_RE = re.compile(rf"^(ensure\s+)?list\s+({_NAME})\s+of\s+(\w+)(?:\s*=\s*(.+))?$")
_PUSH_RE = re.compile(rf"^push\s+(.+?)\s+to\s+({_NAME})(?:\s+at\s+(.+))?$")
_SORT_RE = re.compile(rf"^sort\s+({_NAME})(?:\s+(asc|desc))?$")
_LIST_OP_RE = re.compile(rf"^(shuffle|reverse)\s+({_NAME})$")
_USE_LOCALE_RE = re.compile(r"^use\s+locale\s+([A-Za-z]{2})$")
_LOCALE_DEF_RE = re.compile(r"^locale\s+([A-Za-z]{2})\s*:\s*(.+)$")
_EVAL_RE = re.compile(r"^eval\s+(.+)$")
_FORGET_RE = re.compile(rf"^(?:forget|unstore)\s+({_NAME})$")
_ONCE_RE = re.compile(rf"^once\s+({_NAME})$")


class BlockKind(enum.Enum):
    ROOT = "root"
    PLAIN = "plain"
    HANDLER_BODY = "handler_body"


@dataclass
class _Block:
    kind: BlockKind
    body: list[Node]
    scope: Scope
    handler: HandlerDef | None = None
    start: int = 0  # index of the header line


@dataclass
class CompiledProgram:
    """A compiled LIS script."""

    body: list[Node]
    listing: str
    line_count: int
    comments: list[str] = field(default_factory=list)


def indentation_of(line: str) -> int:
    """Number of indentation levels: one per tab or pair of spaces."""
    level = 0
    spaces = 0
    for ch in line:
        if ch == "\t":
            level += 1
            spaces = 0
        elif ch == " ":
            spaces += 1
            if spaces == 2:
                level += 1
                spaces = 0
        else:
            break
    return level


def _dedent(lines: list[str]) -> str:
    while lines and not lines[-1].strip():
        lines = lines[:-1]
    if not lines:
        return ""
    base = indentation_of(lines[0])
    out = []
    for line in lines:
        if not line.strip():
            continue
        depth = indentation_of(line) - base
        out.append("  " * max(depth, 0) + line.strip())
    return "\n".join(out)


class ScriptCompiler:
    """Compiles LIS source into a ``CompiledProgram``."""

    def __init__(self, scope: Scope | None = None) -> None:
        self.root_scope = scope or Scope()

    def compile(
        self,
        source: str,
        beautify: bool = False,
        keep_comments: bool = False,
        on_step: StepObserver | None = None,
    ) -> CompiledProgram:
        lines = source.splitlines()
        total = len(lines)
        root = _Block(BlockKind.ROOT, [], self.root_scope)
        stack: list[_Block] = [root]
        listing: list[str] = []
        comments: list[str] = []

        for i, raw in enumerate(lines):
            line_no = i + 1
            if on_step is not None:
                on_step(line_no, total)
            text = raw.strip()
            if not text:
                continue
            m = _COMMENT_RE.match(text)
            if m:
                # Comments may sit at any indentation
                comments.append(m.group(1))
                if keep_comments:
                    stack[-1].body.append(Comment(m.group(1)))
                    listing.append(("  " if beautify else "\t") * (len(stack) - 1) + text)
                continue

            depth = len(stack) - 1
            indent = indentation_of(raw)
            if indent > depth:
                raise ScriptIndentationError(
                    line_no, raw, f"Bad indentation: expected at most {depth} level(s), found {indent}"
                )
            while len(stack) - 1 > indent:
                self._close(stack.pop(), lines, i)

            block = stack[-1]
            try:
                opened = self._statement(text, block, stack, i)
            except CompileError:
                raise
            except DialogueError as exc:
                raise CompileError(line_no, raw, str(exc)) from exc

            if opened is None:
                raise CompileError(line_no, raw, "Syntax error")
            if beautify and indent == 0 and listing and listing[-1].startswith(" "):
                listing.append("")
            listing.append(("  " if beautify else "\t") * indent + text)

        while len(stack) > 1:
            self._close(stack.pop(), lines, total)

        get_metrics_collector().record_compilation(total)
        logger.debug("Compiled LIS script: %d lines, %d top-level statements",
                     total, len(root.body))
        return CompiledProgram(
            body=root.body,
            listing="\n".join(listing),
            line_count=total,
            comments=comments,
        )

    # -- blocks ------------------------------------------------------------

    def _close(self, block: _Block, lines: list[str], end: int) -> None:
        if block.kind is BlockKind.HANDLER_BODY and block.handler is not None:
            block.body.append(Return(Literal(False)))
            block.handler.source = _dedent(lines[block.start:end])

    def _open(self, stack: list[_Block], kind: BlockKind, body: list[Node], scope: Scope,
              handler: HandlerDef | None = None, start: int = 0) -> bool:
        stack.append(_Block(kind, body, scope, handler, start))
        return True

    # -- statements --------------------------------------------------------

    def _statement(self, text: str, block: _Block, stack: list[_Block], index: int) -> bool | None:
        """Compile one statement into *block*.

        Returns True if it opened a block, False if not, None if no
        statement form matches.
        """
        scope = block.scope
        body = block.body

        m = _HOST_BLOCK_RE.match(text)
        if m:
            body.append(HostBlock(m.group(1)))
            return False

        m = _HANDLER_RE.match(text)
        if m:
            pattern = string_value(m.group(1))
            handler_scope = scope.child(in_handler=True)
            if m.group(2):
                node = HandlerDef(pattern, [Return(transpile(m.group(2), handler_scope))], text)
                body.append(node)
                return False
            node = HandlerDef(pattern)
            body.append(node)
            return self._open(stack, BlockKind.HANDLER_BODY, node.body, handler_scope,
                              handler=node, start=index)

        m = _ASSIGN_RE.match(text)
        if m:
            name, brackets, inner, expr = m.groups()
            value = transpile(expr, scope)
            target = Target(name, local=name.startswith("$"))
            if target.local and brackets is not None and name not in scope.locals:
                raise ExpressionError(f"Local variable '{name}' is read before being assigned")
            if brackets is not None:
                if inner == "":
                    target.append = True
                elif inner == "last":
                    target.last = True
                else:
                    target.index = transpile(inner, scope)
            body.append(Assign(target, value))
            if target.local:
                scope.locals.add(name)
            return False

        test = self._condition(text, scope)
        if test is not None:
            node = If(test)
            body.append(node)
            return self._open(stack, BlockKind.PLAIN, node.body, scope)

        if _ELSE_RE.match(text):
            last = body[-1] if body else None
            if not isinstance(last, If) or last.orelse is not None:
                raise ExpressionError("'else' without a matching 'if'")
            last.orelse = []
            return self._open(stack, BlockKind.PLAIN, last.orelse, scope)

        m = _SAY_RE.match(text)
        if m:
            body.append(Say(transpile(m.group(1), scope)))
            return False

        m = _RETURN_RE.match(text)
        if m:
            value = transpile(m.group(1), scope) if m.group(1) else Literal(False)
            body.append(Return(value))
            return False

        m = _STORE_RE.match(text)
        if m:
            body.append(Store(transpile(m.group(1), scope), m.group(2)))
            return False

        m = _FOR_EACH_RE.match(text)
        if m:
            node = ForEach(m.group(1), transpile(m.group(2), scope))
            scope.locals.add(m.group(1))
            body.append(node)
            return self._open(stack, BlockKind.PLAIN, node.body, scope)

        m = _FOR_RANGE_RE.match(text)
        if m:
            var, start, stop, step = m.groups()
            node = ForRange(
                var,
                transpile(start, scope),
                transpile(stop, scope),
                transpile(step, scope) if step else None,
            )
            scope.locals.add(var)
            body.append(node)
            return self._open(stack, BlockKind.PLAIN, node.body, scope)

        m = _LIST_RE.match(text)
        if m:
            ensure, cell, type_name, expr = m.groups()
            value = transpile(expr, scope) if expr else None
            body.append(ListDecl(cell, type_name, value, ensure=bool(ensure)))
            return False

        m = _PUSH_RE.match(text)
        if m:
            value, cell, at = m.groups()
            body.append(Push(transpile(value, scope), cell, transpile(at, scope) if at else None))
            return False

        m = _SORT_RE.match(text)
        if m:
            body.append(ListOp("sort", m.group(1), ascending=m.group(2) != "desc"))
            return False

        m = _LIST_OP_RE.match(text)
        if m:
            body.append(ListOp(m.group(1), m.group(2)))
            return False

        m = _USE_LOCALE_RE.match(text)
        if m:
            body.append(UseLocale(m.group(1)))
            return False

        m = _LOCALE_DEF_RE.match(text)
        if m:
            body.append(LocaleDef(m.group(1), self._string_list(m.group(2))))
            return False

        m = _EVAL_RE.match(text)
        if m:
            body.append(Eval(transpile(m.group(1), scope)))
            return False

        m = _FORGET_RE.match(text)
        if m:
            body.append(Forget(m.group(1)))
            return False

        m = _ONCE_RE.match(text)
        if m:
            node = Once(m.group(1))
            body.append(node)
            return self._open(stack, BlockKind.PLAIN, node.body, scope)

        return None

    def _condition(self, text: str, scope: Scope) -> Node | None:
        m = _IF_KNOWS_RE.match(text)
        if m:
            return Knows(m.group(2), negate=bool(m.group(1)))
        m = _IF_EMPTY_RE.match(text)
        if m:
            return Empty(transpile(m.group(2), scope), negate=bool(m.group(1)))
        m = _IF_ISLIST_RE.match(text)
        if m:
            return IsList(m.group(2), negate=bool(m.group(1)))
        m = _IF_RE.match(text)
        if m:
            return transpile(m.group(1), scope)
        return None

    @staticmethod
    def _string_list(text: str) -> list[str]:
        tokens = tokenize(text)
        values: list[str] = []
        expect_string = True
        for tok in tokens:
            if expect_string and tok.kind == "STRING":
                values.append(string_value(tok.value))
            elif not expect_string and tok.value == ",":
                pass
            else:
                raise ExpressionError(f"Expected a list of quoted texts, found {tok.value!r}")
            expect_string = not expect_string
        if expect_string:
            raise ExpressionError("Expected a quoted text after ','")
        return values


def compile_script(
    source: str,
    beautify: bool = False,
    keep_comments: bool = False,
    on_step: StepObserver | None = None,
) -> CompiledProgram:
    return ScriptCompiler().compile(source, beautify, keep_comments, on_step)

"""LIS interpreter — executes compiled programs against an engine.

Statements are dispatched on their node class name (``exec_If``,
``eval_Binary``...).  A ``return`` unwinds through ``_ReturnSignal`` up to the
program or handler body that owns it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from dialogue.errors import IndexOutOfRange, InvalidValue, UnknownFunction
from dialogue.handlers import ORIGIN_SCRIPT
from dialogue.memory import infer_list_type
from lis import nodes
from lis.builtins import BUILTINS
from lis.compiler import CompiledProgram, ScriptCompiler
from lis.expressions import Scope
from lis.values import (
    compare,
    is_empty,
    loose_equal,
    strict_equal,
    to_number,
    to_text,
    truthy,
)

if TYPE_CHECKING:
    from dialogue.dispatcher import DispatchContext

logger = logging.getLogger(__name__)


class _ReturnSignal(Exception):
    def __init__(self, value: Any):
        self.value = value


@dataclass
class Frame:
    """Locals and request context of one running body."""

    locals: dict[str, Any] = field(default_factory=dict)
    context: DispatchContext | None = None


class Interpreter:
    """Runs LIS nodes.  *engine* provides memory, locales, handlers and output."""

    def __init__(self, engine: Any) -> None:
        self.engine = engine

    # Builtins reach these through the interpreter
    @property
    def memory(self):
        return self.engine.memory

    @property
    def catchers(self):
        return self.engine.catchers

    @property
    def rng(self):
        return self.engine.memory.rng

    # -- entry points --------------------------------------------------------

    def run(self, program: CompiledProgram, frame: Frame | None = None) -> Any:
        """Execute *program*; return the value of a top-level ``return``."""
        frame = frame or Frame()
        try:
            self.exec_block(program.body, frame)
        except _ReturnSignal as signal:
            return signal.value
        return None

    def exec_block(self, body: list[nodes.Node], frame: Frame) -> None:
        for node in body:
            getattr(self, "exec_" + type(node).__name__)(node, frame)

    def evaluate(self, node: nodes.Node, frame: Frame) -> Any:
        return getattr(self, "eval_" + type(node).__name__)(node, frame)

    # -- statements ------------------------------------------------------------

    def exec_Comment(self, node: nodes.Comment, frame: Frame) -> None:
        pass

    def exec_HostBlock(self, node: nodes.HostBlock, frame: Frame) -> None:
        block = self.engine.host_blocks.get(node.name)
        if block is None:
            raise UnknownFunction(node.name)
        block(frame.context)

    def exec_HandlerDef(self, node: nodes.HandlerDef, frame: Frame) -> None:
        defined = dict(frame.locals)

        def action(context: DispatchContext) -> Any:
            body_frame = Frame(dict(defined), context)
            try:
                self.exec_block(node.body, body_frame)
            except _ReturnSignal as signal:
                return signal.value
            return False

        self.engine.register_handler(node.pattern, action, origin=ORIGIN_SCRIPT, body=node.source)

    def exec_Assign(self, node: nodes.Assign, frame: Frame) -> None:
        target = node.target
        value = self.evaluate(node.value, frame)

        if target.local:
            if target.index is None and not target.last and not target.append:
                frame.locals[target.name] = value
                return
            self._write_local_item(target, frame, value)
            return

        if target.append:
            self.memory.push_list_value(target.name, value)
        elif target.last:
            length = self.memory.list_length(target.name)
            self.memory.push_list_value(target.name, value, (length or 0) - 1)
        elif target.index is not None:
            index = self.evaluate(target.index, frame)
            self.memory.push_list_value(target.name, value, self._index(index))
        else:
            self._learn(target.name, value)

    def exec_If(self, node: nodes.If, frame: Frame) -> None:
        if self._test(node.test, frame):
            self.exec_block(node.body, frame)
        elif node.orelse is not None:
            self.exec_block(node.orelse, frame)

    def exec_Say(self, node: nodes.Say, frame: Frame) -> None:
        self.engine.say(to_text(self.evaluate(node.value, frame)))

    def exec_Return(self, node: nodes.Return, frame: Frame) -> None:
        value = self.evaluate(node.value, frame) if node.value is not None else False
        raise _ReturnSignal(value)

    def exec_Store(self, node: nodes.Store, frame: Frame) -> None:
        self._learn(node.cell, self.evaluate(node.value, frame))

    def exec_ForRange(self, node: nodes.ForRange, frame: Frame) -> None:
        current = to_number(self.evaluate(node.start, frame))
        stop = to_number(self.evaluate(node.stop, frame))
        step = to_number(self.evaluate(node.step, frame)) if node.step is not None else 1
        if step == 0:
            raise InvalidValue("A 'for' loop step can't be 0")
        while (step > 0 and current <= stop) or (step < 0 and current >= stop):
            frame.locals[node.var] = current
            self.exec_block(node.body, frame)
            current += step

    def exec_ForEach(self, node: nodes.ForEach, frame: Frame) -> None:
        values = self.evaluate(node.iterable, frame)
        if values is None:
            return
        if not isinstance(values, list):
            values = [values]
        for value in list(values):
            frame.locals[node.var] = value
            self.exec_block(node.body, frame)

    def exec_ListDecl(self, node: nodes.ListDecl, frame: Frame) -> None:
        if node.ensure and self.memory.knows(node.cell):
            return
        values = self.evaluate(node.value, frame) if node.value is not None else []
        if not isinstance(values, list):
            values = [values]
        self.memory.learn_list(node.cell, values, node.type_name)

    def exec_Push(self, node: nodes.Push, frame: Frame) -> None:
        value = self.evaluate(node.value, frame)
        index = None
        if node.index is not None:
            index = self._index(self.evaluate(node.index, frame))
        self.memory.push_list_value(node.cell, value, index)

    def exec_ListOp(self, node: nodes.ListOp, frame: Frame) -> None:
        if node.op == "sort":
            self.memory.sort_list(node.cell, assign=True, ascending=node.ascending)
        elif node.op == "shuffle":
            self.memory.shuffle_list(node.cell, assign=True)
        else:
            self.memory.reverse_list(node.cell, assign=True)

    def exec_UseLocale(self, node: nodes.UseLocale, frame: Frame) -> None:
        self.engine.locales.use(node.locale)

    def exec_LocaleDef(self, node: nodes.LocaleDef, frame: Frame) -> None:
        self.engine.locales.add_pattern(node.locale, node.variants)

    def exec_Eval(self, node: nodes.Eval, frame: Frame) -> None:
        source = to_text(self.evaluate(node.value, frame))
        scope = Scope(set(frame.locals), in_handler=frame.context is not None)
        program = ScriptCompiler(scope).compile(source)
        nested = Frame(frame.locals, frame.context)
        try:
            self.exec_block(program.body, nested)
        except _ReturnSignal:
            # A return only ends the evaluated text
            pass

    def exec_Forget(self, node: nodes.Forget, frame: Frame) -> None:
        self.memory.forget(node.cell)

    def exec_Once(self, node: nodes.Once, frame: Frame) -> None:
        if self.memory.knows(node.cell):
            return
        try:
            self.exec_block(node.body, frame)
        finally:
            self.memory.learn(node.cell, True)

    # -- conditions ------------------------------------------------------------

    def _test(self, test: nodes.Node, frame: Frame) -> bool:
        if isinstance(test, nodes.Knows):
            return self.memory.knows(test.cell) != test.negate
        if isinstance(test, nodes.IsList):
            return self.memory.is_list(test.cell) != test.negate
        if isinstance(test, nodes.Empty):
            return is_empty(self.evaluate(test.value, frame)) != test.negate
        return truthy(self.evaluate(test, frame))

    # -- expressions -----------------------------------------------------------

    def eval_Literal(self, node: nodes.Literal, frame: Frame) -> Any:
        return node.value

    def eval_ListLiteral(self, node: nodes.ListLiteral, frame: Frame) -> list[Any]:
        return [self.evaluate(item, frame) for item in node.items]

    def eval_Text(self, node: nodes.Text, frame: Frame) -> str:
        out = []
        for part in node.parts:
            if isinstance(part, str):
                out.append(part)
            elif isinstance(part, nodes.Cell):
                out.append(to_text(self.memory.get(part.name)))
            else:
                out.append(to_text(self.evaluate(part, frame)))
        return "".join(out)

    def eval_Local(self, node: nodes.Local, frame: Frame) -> Any:
        return frame.locals.get(node.name)

    def eval_Cell(self, node: nodes.Cell, frame: Frame) -> Any:
        return self.memory.get_cell(node.name)

    def eval_Caught(self, node: nodes.Caught, frame: Frame) -> Any:
        if frame.context is None:
            return None
        values = frame.context.formatted if node.formatted else frame.context.caught
        if node.index >= len(values):
            return None
        return values[node.index]

    def eval_Index(self, node: nodes.Index, frame: Frame) -> Any:
        container = self.evaluate(node.target, frame)
        index = self._index(self.evaluate(node.index, frame))
        if isinstance(container, (list, str)) and 0 <= index < len(container):
            return container[index]
        return None

    def eval_Last(self, node: nodes.Last, frame: Frame) -> Any:
        container = self.evaluate(node.target, frame)
        if isinstance(container, (list, str)) and container:
            return container[-1]
        return None

    def eval_Call(self, node: nodes.Call, frame: Frame) -> Any:
        args = [self.evaluate(arg, frame) for arg in node.args]
        return BUILTINS[node.name].func(self, *args)

    def eval_Unary(self, node: nodes.Unary, frame: Frame) -> Any:
        value = self.evaluate(node.operand, frame)
        if node.op == "not":
            return not truthy(value)
        return -to_number(value)

    def eval_Binary(self, node: nodes.Binary, frame: Frame) -> Any:
        op = node.op
        if op == "and":
            left = self.evaluate(node.left, frame)
            return self.evaluate(node.right, frame) if truthy(left) else left
        if op == "or":
            left = self.evaluate(node.left, frame)
            return left if truthy(left) else self.evaluate(node.right, frame)

        left = self.evaluate(node.left, frame)
        right = self.evaluate(node.right, frame)
        if op == "==":
            return loose_equal(left, right)
        if op == "!=":
            return not loose_equal(left, right)
        if op == "!==":
            return not strict_equal(left, right)
        if op in ("<", ">", "<=", ">="):
            return compare(op, left, right)
        if op == "+":
            return _add(left, right)
        return _arithmetic(op, to_number(left), to_number(right))

    # -- helpers -----------------------------------------------------------------

    def _learn(self, cell: str, value: Any) -> None:
        if isinstance(value, list):
            type_name = self.memory.list_type(cell) or (infer_list_type(value) if value else "string")
            self.memory.learn_list(cell, value, type_name)
        else:
            self.memory.learn(cell, value)

    @staticmethod
    def _index(value: Any) -> int:
        number = to_number(value)
        if isinstance(number, float):
            if not number.is_integer():
                raise IndexOutOfRange("", value, 0)
            number = int(number)
        return number

    def _write_local_item(self, target: nodes.Target, frame: Frame, value: Any) -> None:
        values = frame.locals.get(target.name)
        if not isinstance(values, list):
            raise InvalidValue(f"Local variable '{target.name}' is not a list")
        if target.append:
            values.append(value)
            return
        index = len(values) - 1 if target.last else self._index(self.evaluate(target.index, frame))
        if index == len(values):
            values.append(value)
        elif 0 <= index < len(values):
            values[index] = value
        else:
            raise IndexOutOfRange(target.name, index, len(values))


def _add(left: Any, right: Any) -> Any:
    if isinstance(left, list) and isinstance(right, list):
        return left + right
    if isinstance(left, str) or isinstance(right, str):
        return to_text(left) + to_text(right)
    return to_number(left) + to_number(right)


def _arithmetic(op: str, left: int | float, right: int | float) -> int | float:
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if right == 0:
        raise InvalidValue("Division by zero")
    if op == "/":
        return left / right
    return left % right

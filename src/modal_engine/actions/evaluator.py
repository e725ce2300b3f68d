"""Restricted expression evaluator for conditions, arguments, and repeats.

Expressions use Python expression syntax, parsed with :mod:`ast` and
interpreted node by node. Only literals, operators, conditional
expressions, subscripts, a few builtins and read-only string methods are
available, plus the context variables below. Nothing from configuration is
ever handed to ``eval``.

==============  ============================================================
``__file``      file name of the active document (or ``None``)
``__line``      zero-based line of the primary cursor
``__col``       zero-based column of the primary cursor
``__char``      character under the primary cursor (``""`` at end of text)
``__selection`` text of the primary selection
``__selecting`` whether selection mode is on or any selection is non-empty
``__keys``      pending keys, oldest first
``__rkeys``     pending keys, newest first
``__keySeq``    pending keys joined into one string
``__rkeySeq``   ``__keySeq`` reversed
==============  ============================================================
"""

from __future__ import annotations

import ast
import json
import operator
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from modal_engine.errors import ExpressionEvaluationError

MAX_SEQUENCE_LENGTH = 100_000

_CONSTANTS: Mapping[str, object] = {"true": True, "false": False, "null": None}

_BINARY: Mapping[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_UNARY: Mapping[type, Callable[[Any], Any]] = {
    ast.Not: operator.not_,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

_COMPARE: Mapping[type, Callable[[Any, Any], Any]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda left, right: left in right,
    ast.NotIn: lambda left, right: left not in right,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}

_FUNCTIONS: Mapping[str, Callable[..., Any]] = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "abs": abs,
    "min": min,
    "max": max,
}

_STRING_METHODS = frozenset(
    {
        "lower",
        "upper",
        "strip",
        "lstrip",
        "rstrip",
        "startswith",
        "endswith",
        "isalpha",
        "isalnum",
        "isdigit",
        "isspace",
        "isupper",
        "islower",
        "count",
        "find",
        "split",
        "join",
        "replace",
    }
)


@dataclass(frozen=True, slots=True)
class ExpressionContext:
    """Read-only snapshot of editor state taken when an action runs."""

    file: Optional[str] = None
    line: Optional[int] = None
    col: Optional[int] = None
    char: Optional[str] = None
    selection: Optional[str] = None
    selecting: bool = False
    keys: Tuple[str, ...] = ()

    def variables(self) -> Dict[str, object]:
        key_seq = "".join(self.keys)
        return {
            "__file": self.file,
            "__line": self.line,
            "__col": self.col,
            "__char": self.char,
            "__selection": self.selection,
            "__selecting": self.selecting,
            "__keys": list(self.keys),
            "__rkeys": list(reversed(self.keys)),
            "__keySeq": key_seq,
            "__rkeySeq": key_seq[::-1],
        }


def branch_key(value: object) -> str:
    """Render an evaluation result as a conditional branch key."""

    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)


@lru_cache(maxsize=512)
def _parse(source: str) -> ast.Expression:
    return ast.parse(source.strip(), mode="eval")


class ExpressionEvaluator:
    """Evaluates expression strings against an ``ExpressionContext``."""

    def evaluate(self, source: str, context: ExpressionContext) -> object:
        try:
            tree = _parse(source)
        except SyntaxError as exc:
            raise ExpressionEvaluationError(source, f"syntax error: {exc.msg}") from exc
        try:
            return _Interpreter(context.variables()).visit(tree.body)
        except _Rejected as exc:
            raise ExpressionEvaluationError(source, str(exc)) from exc
        except Exception as exc:
            raise ExpressionEvaluationError(
                source, f"{type(exc).__name__}: {exc}"
            ) from exc

    def truthy(self, source: str, context: ExpressionContext) -> bool:
        return bool(self.evaluate(source, context))


class _Rejected(Exception):
    pass


class _Interpreter:
    def __init__(self, variables: Mapping[str, object]) -> None:
        self._variables = variables

    def visit(self, node: ast.AST) -> Any:
        method = getattr(self, f"visit_{type(node).__name__}", None)
        if method is None:
            raise _Rejected(f"'{type(node).__name__}' is not allowed in expressions")
        return method(node)

    def visit_Constant(self, node: ast.Constant) -> Any:
        if not isinstance(node.value, (str, int, float, bool, type(None))):
            raise _Rejected(f"unsupported literal {node.value!r}")
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id in self._variables:
            return self._variables[node.id]
        if node.id in _CONSTANTS:
            return _CONSTANTS[node.id]
        raise _Rejected(f"unknown name '{node.id}'")

    def visit_List(self, node: ast.List) -> Any:
        return [self.visit(item) for item in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> Any:
        return tuple(self.visit(item) for item in node.elts)

    def visit_Dict(self, node: ast.Dict) -> Any:
        result = {}
        for key, value in zip(node.keys, node.values):
            if key is None:
                raise _Rejected("dictionary unpacking is not allowed")
            result[self.visit(key)] = self.visit(value)
        return result

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        result: Any = None
        for operand in node.values:
            result = self.visit(operand)
            if isinstance(node.op, ast.And) and not result:
                return result
            if isinstance(node.op, ast.Or) and result:
                return result
        return result

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        op = _UNARY.get(type(node.op))
        if op is None:
            raise _Rejected(f"operator '{type(node.op).__name__}' is not allowed")
        return op(self.visit(node.operand))

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        op = _BINARY.get(type(node.op))
        if op is None:
            raise _Rejected(f"operator '{type(node.op).__name__}' is not allowed")
        left = self.visit(node.left)
        right = self.visit(node.right)
        if isinstance(node.op, ast.Mult):
            _check_repetition(left, right)
        return op(left, right)

    def visit_Compare(self, node: ast.Compare) -> Any:
        left = self.visit(node.left)
        for op_node, comparator in zip(node.ops, node.comparators):
            op = _COMPARE[type(op_node)]
            right = self.visit(comparator)
            if not op(left, right):
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        if self.visit(node.test):
            return self.visit(node.body)
        return self.visit(node.orelse)

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        return self.visit(node.value)[self.visit(node.slice)]

    def visit_Slice(self, node: ast.Slice) -> Any:
        return slice(
            self.visit(node.lower) if node.lower else None,
            self.visit(node.upper) if node.upper else None,
            self.visit(node.step) if node.step else None,
        )

    def visit_Call(self, node: ast.Call) -> Any:
        if node.keywords:
            raise _Rejected("keyword arguments are not allowed")
        args = [self.visit(arg) for arg in node.args]
        func = node.func
        if isinstance(func, ast.Name):
            if func.id not in _FUNCTIONS:
                raise _Rejected(f"function '{func.id}' is not available")
            return _FUNCTIONS[func.id](*args)
        if isinstance(func, ast.Attribute):
            target = self.visit(func.value)
            if not isinstance(target, str) or func.attr not in _STRING_METHODS:
                raise _Rejected(f"method '{func.attr}' is not available")
            _check_method_growth(target, func.attr, args)
            return getattr(target, func.attr)(*args)
        raise _Rejected("only named functions can be called")


def _check_repetition(left: Any, right: Any) -> None:
    for seq, count in ((left, right), (right, left)):
        if isinstance(seq, (str, list, tuple)) and isinstance(count, int):
            if len(seq) * count > MAX_SEQUENCE_LENGTH:
                raise _Rejected("sequence repetition is too large")


def _check_method_growth(target: str, method: str, args: Sequence[Any]) -> None:
    """Reject ``replace``/``join`` calls whose result would be too long."""

    if method == "replace" and len(args) >= 2:
        old, new = args[0], args[1]
        if not isinstance(old, str) or not isinstance(new, str) or len(new) <= len(old):
            return
        occurrences = target.count(old) if old else len(target) + 1
        if len(args) > 2 and isinstance(args[2], int) and args[2] >= 0:
            occurrences = min(occurrences, args[2])
        size = len(target) + occurrences * (len(new) - len(old))
    elif method == "join" and args and isinstance(args[0], (list, tuple)):
        parts = args[0]
        size = len(target) * max(len(parts) - 1, 0)
        size += sum(len(part) for part in parts if isinstance(part, str))
    else:
        return
    if size > MAX_SEQUENCE_LENGTH:
        raise _Rejected(f"result of '{method}' is too long")


__all__ = [
    "ExpressionContext",
    "ExpressionEvaluator",
    "branch_key",
]

"""
Arithmetic directives: ``#calc`` and ``#neg``.

``#calc "expr"`` substitutes ``$variables`` inside *expr* and evaluates it
with :class:`SafeEvaluator`, which accepts only numeric literals, arithmetic
and comparison operators, boolean operators and a fixed set of math
functions.  ``#neg arg`` negates a numeric argument.
"""
from __future__ import annotations

import ast
import logging
import math
from typing import Any, Callable, Dict, List, Union

from ..errors import DirectiveError
from ..models import Token, TokenKind
from .registry import Directive, DirectiveContext

logger = logging.getLogger(__name__)

Number = Union[int, float]

_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "atan2": math.atan2,
    "sqrt": math.sqrt,
    "exp": math.exp,
    "log": math.log,
    "log10": math.log10,
    "pow": math.pow,
    "abs": abs,
    "min": min,
    "max": max,
    "floor": math.floor,
    "ceil": math.ceil,
    "round": round,
}

_CONSTANTS: Dict[str, Any] = {
    "pi": math.pi,
    "e": math.e,
    "true": True,
    "false": False,
}

_BINARY_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: lambda a, b: a + b,
    ast.Sub: lambda a, b: a - b,
    ast.Mult: lambda a, b: a * b,
    ast.Div: lambda a, b: a / b,
    ast.FloorDiv: lambda a, b: a // b,
    ast.Mod: lambda a, b: a % b,
    ast.Pow: lambda a, b: a ** b,
}

_COMPARE_OPS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: lambda a, b: a == b,
    ast.NotEq: lambda a, b: a != b,
    ast.Lt: lambda a, b: a < b,
    ast.LtE: lambda a, b: a <= b,
    ast.Gt: lambda a, b: a > b,
    ast.GtE: lambda a, b: a >= b,
}


class CalcError(ValueError):
    """Raised by :class:`SafeEvaluator` for rejected or failing expressions."""


class SafeEvaluator(ast.NodeVisitor):
    """Evaluates the arithmetic subset of Python expressions."""

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Constant(self, node: ast.Constant) -> Any:
        if isinstance(node.value, (int, float)):
            return node.value
        raise CalcError(f"unsupported literal {node.value!r}")

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id in _CONSTANTS:
            return _CONSTANTS[node.id]
        raise CalcError(f"unknown name {node.id!r}")

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        op = _BINARY_OPS.get(type(node.op))
        if op is None:
            raise CalcError(f"unsupported operator {type(node.op).__name__}")
        return op(self.visit(node.left), self.visit(node.right))

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.USub):
            return -operand
        if isinstance(node.op, ast.UAdd):
            return +operand
        if isinstance(node.op, ast.Not):
            return not operand
        raise CalcError(f"unsupported unary operator {type(node.op).__name__}")

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        if isinstance(node.op, ast.And):
            return all(self.visit(v) for v in node.values)
        return any(self.visit(v) for v in node.values)

    def visit_Compare(self, node: ast.Compare) -> Any:
        left = self.visit(node.left)
        for op_node, comparator in zip(node.ops, node.comparators):
            op = _COMPARE_OPS.get(type(op_node))
            if op is None:
                raise CalcError(f"unsupported comparison {type(op_node).__name__}")
            right = self.visit(comparator)
            if not op(left, right):
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        return self.visit(node.body) if self.visit(node.test) else self.visit(node.orelse)

    def visit_Call(self, node: ast.Call) -> Any:
        if not isinstance(node.func, ast.Name) or node.func.id not in _FUNCTIONS:
            raise CalcError("only the built-in math functions may be called")
        if node.keywords:
            raise CalcError("keyword arguments are not supported")
        args = [self.visit(a) for a in node.args]
        return _FUNCTIONS[node.func.id](*args)

    def generic_visit(self, node: ast.AST) -> Any:
        raise CalcError(f"unsupported syntax: {type(node).__name__}")


def evaluate_expression(expression: str) -> Any:
    """Evaluate *expression*; raises :class:`CalcError` when it is rejected."""
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as exc:
        raise CalcError(f"invalid expression {expression!r}: {exc.msg}") from exc
    try:
        return SafeEvaluator().visit(tree)
    except CalcError:
        raise
    except (ArithmeticError, ValueError, TypeError) as exc:
        raise CalcError(f"cannot evaluate {expression!r}: {exc}") from exc


def result_token(value: Any, line: int) -> Token:
    if isinstance(value, bool):
        return Token.word("true" if value else "false", line)
    if isinstance(value, (int, float)):
        return Token.number(value, line)
    raise CalcError(f"expression produced a non-numeric value {value!r}")


# ---------------------------------------------------------------------------
# Directives
# ---------------------------------------------------------------------------


class CalcDirective(Directive):
    """``#calc "expression"`` → the numeric result."""

    name = "calc"

    def expand(self, context: DirectiveContext) -> List[Token]:
        argument = context.stream.expect("#calc expression")
        if argument.kind is TokenKind.STRING:
            expression = str(argument.value)
        elif argument.kind in (TokenKind.WORD, TokenKind.NUMBER):
            expression = argument.text
        else:
            raise context.error(f"expected a quoted expression, found {argument.text!r}")

        expanded = context.builder.resolver.expand_string(expression, context.scope, context.line)
        try:
            value = evaluate_expression(expanded)
            token = result_token(value, context.line)
        except CalcError as exc:
            raise context.error(str(exc)) from exc
        logger.debug("#calc %r -> %s", expanded, token.text)
        return [token]


class NegDirective(Directive):
    """``#neg arg`` → the argument with its sign flipped."""

    name = "neg"

    def expand(self, context: DirectiveContext) -> List[Token]:
        argument = context.read_argument()
        if len(argument) != 1 or argument[0].kind is not TokenKind.NUMBER:
            shown = " ".join(t.text for t in argument)
            raise context.error(f"expected a single number, found {shown!r}")
        return [Token.number(-argument[0].value, context.line)]

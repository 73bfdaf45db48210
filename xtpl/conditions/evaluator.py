"""
Stack evaluator for postfix IF expressions.

Binary operators pop the right operand first and the left one second; a
missing operand evaluates as null. Division and modulo by zero raise
ZeroDivisionError to the caller.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, List

from ..context import RenderContext
from ..values import (
    compare,
    contains,
    has_substring,
    is_array,
    is_mapping,
    loose_equals,
    strict_equals,
    to_bool,
    to_number,
)
from ..variables import VariableReference, render_embedded
from .model import Expression, Operator

logger = logging.getLogger(__name__)


def _add(a: Any, b: Any) -> Any:
    if is_array(a) and is_array(b):
        # key union, left side wins
        merged = dict(a.items()) if is_mapping(a) else dict(enumerate(a))
        for key, value in (b.items() if is_mapping(b) else enumerate(b)):
            merged.setdefault(key, value)
        return merged
    return to_number(a) + to_number(b)


def _div(a: Any, b: Any) -> Any:
    x, y = to_number(a), to_number(b)
    if y == 0:
        raise ZeroDivisionError("Division by zero")
    if isinstance(x, int) and isinstance(y, int) and x % y == 0:
        return x // y
    return x / y


def _mod(a: Any, b: Any) -> int:
    x, y = int(to_number(a)), int(to_number(b))
    if y == 0:
        raise ZeroDivisionError("Modulo by zero")
    return int(math.fmod(x, y))


_BINARY: Dict[Operator, Callable[[Any, Any], Any]] = {
    Operator.ADD: _add,
    Operator.SUB: lambda a, b: to_number(a) - to_number(b),
    Operator.MUL: lambda a, b: to_number(a) * to_number(b),
    Operator.DIV: _div,
    Operator.MOD: _mod,
    Operator.EQ: loose_equals,
    Operator.NE: lambda a, b: not loose_equals(a, b),
    Operator.STRICT_EQ: strict_equals,
    Operator.STRICT_NE: lambda a, b: not strict_equals(a, b),
    Operator.LT: lambda a, b: compare(a, b) < 0,
    Operator.GT: lambda a, b: compare(a, b) > 0,
    Operator.LE: lambda a, b: compare(a, b) <= 0,
    Operator.GE: lambda a, b: compare(a, b) >= 0,
    Operator.HAS: contains,
    Operator.CONTAINS: has_substring,
    Operator.AND: lambda a, b: to_bool(a) and to_bool(b),
    Operator.OR: lambda a, b: to_bool(a) or to_bool(b),
    Operator.XOR: lambda a, b: to_bool(a) != to_bool(b),
}


class ExpressionEvaluator:
    """Evaluates compiled Expressions against a render context."""

    def __init__(self, ctx: RenderContext):
        self.ctx = ctx

    def evaluate(self, expr: Expression) -> bool:
        stack: List[Any] = []

        def pop() -> Any:
            return stack.pop() if stack else None

        for tok in expr.postfix:
            if not tok.is_operator:
                stack.append(self._operand(tok.value))
                continue

            op = tok.op
            if op is Operator.NOT:
                stack.append(not to_bool(pop()))
            elif op in _BINARY:
                right = pop()
                left = pop()
                stack.append(_BINARY[op](left, right))
            # stray parentheses never reach a compiled postfix sequence

        result = to_bool(pop())
        logger.debug("IF %s → %s", expr.source, result)
        return result

    def _operand(self, value: Any) -> Any:
        if isinstance(value, VariableReference):
            return value.resolve(self.ctx)
        if isinstance(value, str) and "{" in value:
            return render_embedded(value, self.ctx)
        return value


def evaluate(expr: Expression, ctx: RenderContext) -> bool:
    return ExpressionEvaluator(ctx).evaluate(expr)


__all__ = ["ExpressionEvaluator", "evaluate"]

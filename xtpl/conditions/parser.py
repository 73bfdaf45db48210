"""
Infix → postfix conversion for IF expressions.

Precedence-driven conversion (shunting-yard):
- operands go straight to the output
- ``(`` is pushed, ``)`` pops down to the matching ``(``
- prefix ``!`` is pushed without popping anything
- a binary operator first pops every stacked operator that binds at least
  as tightly (all binary operators are left-associative)

Precedence table (tightest first)::

    * / %  →  + -  →  HAS ~=  →  == === != !== < > <= >=  →  !  →  AND  →  OR XOR
"""

from __future__ import annotations

from functools import lru_cache
from typing import List

from ..errors import CompileError
from .lexer import ExpressionLexer
from .model import Expression, ExprToken, Operator


class ExpressionParser:
    """Compiles condition strings into postfix Expressions."""

    def __init__(self):
        self.lexer = ExpressionLexer()

    def parse(self, source: str) -> Expression:
        """
        Compile a condition.

        Raises:
            CompileError: On unbalanced parentheses
        """
        infix = self.lexer.tokenize(source)
        return Expression(source=source, postfix=tuple(to_postfix(infix, source)))


def to_postfix(tokens: List[ExprToken], source: str = "") -> List[ExprToken]:
    output: List[ExprToken] = []
    stack: List[Operator] = []

    for tok in tokens:
        if not tok.is_operator:
            output.append(tok)
            continue

        op = tok.op
        if op is Operator.OPEN or op is Operator.NOT:
            stack.append(op)
        elif op is Operator.CLOSE:
            while stack and stack[-1] is not Operator.OPEN:
                output.append(ExprToken.operator(stack.pop()))
            if not stack:
                raise CompileError("Unbalanced parentheses in condition", source)
            stack.pop()
        else:
            while stack and stack[-1] is not Operator.OPEN and stack[-1].precedence <= op.precedence:
                output.append(ExprToken.operator(stack.pop()))
            stack.append(op)

    while stack:
        op = stack.pop()
        if op is Operator.OPEN:
            raise CompileError("Unbalanced parentheses in condition", source)
        output.append(ExprToken.operator(op))

    return output


@lru_cache(maxsize=1024)
def compile_expression(source: str) -> Expression:
    """Cached shortcut for ``ExpressionParser().parse(source)``."""
    return ExpressionParser().parse(source)


__all__ = ["ExpressionParser", "to_postfix", "compile_expression"]

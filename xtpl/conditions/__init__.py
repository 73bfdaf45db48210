"""
IF expressions: lexer, infix→postfix parser and stack evaluator.
"""

from .evaluator import ExpressionEvaluator, evaluate
from .lexer import ExpressionLexer
from .model import Expression, ExprToken, Operator
from .parser import ExpressionParser, compile_expression, to_postfix

__all__ = [
    "Expression",
    "ExprToken",
    "Operator",
    "ExpressionLexer",
    "ExpressionParser",
    "ExpressionEvaluator",
    "compile_expression",
    "to_postfix",
    "evaluate",
]

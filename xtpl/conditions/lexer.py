"""
Lexer for IF expressions.

Works in two steps:
- spacing normalization: parentheses and a unary ``!`` in front of a tag or
  a group get surrounded by spaces (outside quotes and tags only)
- splitting on whitespace with quote/brace awareness, then classification:
  a token whose exact text is an operator becomes an operator, anything else
  is parsed as a literal/reference operand
"""

from __future__ import annotations

from typing import List

from ..tokenizer import parse_argument, tokenize
from .model import OPERATORS_BY_TEXT, ExprToken

_DELIMITERS = (" ", "\t", "\n", "\r")


def normalize_spacing(text: str) -> str:
    """
    Insert spaces around ``(``, ``)`` and in ``!{`` / ``!(``.

    Quoted strings and tag bodies are copied unchanged.
    """
    out: List[str] = []
    quote = ""
    depth = 0
    n = len(text)

    for i, ch in enumerate(text):
        if quote:
            out.append(ch)
            if ch == quote:
                quote = ""
            continue
        if depth > 0:
            out.append(ch)
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
            continue

        if ch in ("'", '"'):
            quote = ch
            out.append(ch)
        elif ch == "{":
            depth = 1
            out.append(ch)
        elif ch in ("(", ")"):
            out.append(f" {ch} ")
        elif ch == "!" and i + 1 < n and text[i + 1] in ("{", "("):
            out.append(" ! ")
        else:
            out.append(ch)

    return "".join(out)


class ExpressionLexer:
    """Turns an IF condition into infix ExprTokens."""

    def tokenize(self, text: str) -> List[ExprToken]:
        words = tokenize(normalize_spacing(text), _DELIMITERS, trim_quotes=False)
        tokens: List[ExprToken] = []
        for word in words:
            op = OPERATORS_BY_TEXT.get(word)
            if op is not None:
                tokens.append(ExprToken.operator(op))
            else:
                tokens.append(ExprToken.operand(parse_argument(word)))
        return tokens


__all__ = ["ExpressionLexer", "normalize_spacing"]

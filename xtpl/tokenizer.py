"""
Low-level text splitting shared by tags, callback arguments and conditions.

Everything here is quote- and brace-aware: delimiters inside '...', "..."
or {...} never split a token.
"""

from __future__ import annotations

from typing import Any, Iterable, List

from .values import parse_numeric

ARGUMENT_DELIMITERS = (",", " ", "\n", "\r", "\t")

_QUOTES = ("'", '"')


def tokenize(text: str, delimiters: Iterable[str] = (" ",), trim_quotes: bool = True) -> List[str]:
    """
    Split text into tokens on any of the delimiter characters.

    Runs of delimiters count as one separator. Quoted sections and
    brace-delimited tags are copied as-is; with ``trim_quotes`` the
    surrounding quote characters of a top-level quoted section are dropped
    (an empty quoted section still yields an empty token).

    Args:
        text: Source string
        delimiters: Separator characters
        trim_quotes: Remove top-level quote characters from tokens

    Returns:
        List of tokens in source order
    """
    delims = set(delimiters)
    tokens: List[str] = []
    buf: List[str] = []
    started = False
    quote = ""
    depth = 0

    for ch in text:
        if quote:
            if ch == quote:
                quote = ""
                if depth > 0 or not trim_quotes:
                    buf.append(ch)
            else:
                buf.append(ch)
            continue

        if ch in _QUOTES:
            quote = ch
            started = True
            if depth > 0 or not trim_quotes:
                buf.append(ch)
            continue

        if ch == "{":
            depth += 1
            started = True
            buf.append(ch)
            continue

        if ch == "}":
            if depth > 0:
                depth -= 1
            buf.append(ch)
            started = True
            continue

        if depth == 0 and ch in delims:
            if started:
                tokens.append("".join(buf))
                buf = []
                started = False
            continue

        buf.append(ch)
        started = True

    if started:
        tokens.append("".join(buf))
    return tokens


def parse_argument(arg: str) -> Any:
    """
    Classify a raw argument token.

    - ``true`` / ``false`` / ``null`` (any case) → bool / None
    - numeric → int when integral, float otherwise
    - ``{...}`` → nested VariableReference
    - ``'...'`` / ``"..."`` → the unquoted string
    - anything else → the raw string
    """
    lowered = arg.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered == "null":
        return None

    num = parse_numeric(arg)
    if num is not None:
        return num

    if len(arg) >= 2 and arg[0] == "{" and arg[-1] == "}":
        from .variables import parse_reference
        return parse_reference(arg[1:-1])

    if len(arg) >= 2 and arg[0] == arg[-1] and arg[0] in _QUOTES:
        return arg[1:-1]

    return arg


def split_chain(text: str) -> List[str]:
    """
    Split a tag body on top-level ``|``.

    Pipes inside quotes, nested tags or call parentheses belong to the
    enclosing segment.
    """
    parts: List[str] = []
    buf: List[str] = []
    quote = ""
    braces = 0
    parens = 0

    for ch in text:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = ""
            continue
        if ch in _QUOTES:
            quote = ch
        elif ch == "{":
            braces += 1
        elif ch == "}":
            braces = max(0, braces - 1)
        elif ch == "(":
            parens += 1
        elif ch == ")":
            parens = max(0, parens - 1)
        elif ch == "|" and braces == 0 and parens == 0:
            parts.append("".join(buf))
            buf = []
            continue
        buf.append(ch)

    parts.append("".join(buf))
    return parts


__all__ = ["ARGUMENT_DELIMITERS", "tokenize", "parse_argument", "split_chain"]

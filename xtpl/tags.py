"""
Tag recognition in literal text.

A tag is ``{`` followed by an uppercase letter, digit, ``_`` or ``$``, with
balanced braces, ending in a word character or ``)`` right before the
closing ``}``. Braces nested inside a tag must themselves form valid tags.
Tags embedded in plain strings follow the looser rule of ``interpolate``.
"""

from __future__ import annotations

import re
from typing import Callable, Iterator, Tuple

_FIRST_CHAR = re.compile(r"[A-Z0-9_$]")
_LAST_CHAR = re.compile(r"[\w)]")

_EMBEDDED_RE = re.compile(r"\{(\$?[\w.\-]+(?:\|.+?)?)\}")


def match_tag(text: str, start: int) -> int:
    """
    Match a tag starting at ``text[start]``.

    Returns:
        Index just past the closing brace, or -1 if no valid tag starts here
    """
    n = len(text)
    if start + 1 >= n or text[start] != "{" or not _FIRST_CHAR.match(text[start + 1]):
        return -1

    pos = start + 1
    while pos < n:
        ch = text[pos]
        if ch == "{":
            end = match_tag(text, pos)
            if end < 0:
                return -1
            pos = end
            continue
        if ch == "}":
            if _LAST_CHAR.match(text[pos - 1]):
                return pos + 1
            return -1
        pos += 1
    return -1


def iter_segments(text: str) -> Iterator[Tuple[str, bool]]:
    """
    Split text into literal chunks and tag bodies.

    Yields:
        (chunk, is_tag) pairs; tag chunks come without the outer braces
    """
    pos = 0
    literal_from = 0
    n = len(text)
    while pos < n:
        brace = text.find("{", pos)
        if brace < 0:
            break
        end = match_tag(text, brace)
        if end < 0:
            pos = brace + 1
            continue
        if brace > literal_from:
            yield text[literal_from:brace], False
        yield text[brace + 1:end - 1], True
        literal_from = pos = end
    if literal_from < n:
        yield text[literal_from:], False


def interpolate(text: str, render: Callable[[str], str]) -> str:
    """
    Replace every embedded tag in a plain string with ``render(body)``.

    Strings (FILE paths, quoted condition operands, callback arguments) use
    a looser rule than literal text: any word character, ``$``, ``.`` or
    ``-`` may start the name, so lowercase host-global names work.
    """
    return _EMBEDDED_RE.sub(lambda m: render(m.group(1)), text)


__all__ = ["match_tag", "iter_segments", "interpolate"]

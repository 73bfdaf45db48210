"""
Callback registry for ``{TAG|name(args)}`` chains.

Templates may only call functions that the host registered by name.
A fresh registry comes seeded with a small set of string/array helpers;
``dump`` is built into the resolver and rendered by ``dump_html``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .values import format_number, is_array, is_mapping, is_number, is_object, parse_numeric, to_text

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]

DUMP_MAX_LEVEL = 5


# ---------------------------- default callbacks ---------------------------- #

def htmlspecialchars(value: Any) -> str:
    return (
        to_text(value)
        .replace("&", "&amp;")
        .replace('"', "&quot;")
        .replace("'", "&#039;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


def strtoupper(value: Any) -> str:
    return to_text(value).upper()


def strtolower(value: Any) -> str:
    return to_text(value).lower()


def ucfirst(value: Any) -> str:
    text = to_text(value)
    return text[:1].upper() + text[1:]


def trim(value: Any, characters: str = " \t\n\r\0\x0b") -> str:
    return to_text(value).strip(characters)


def count(value: Any) -> int:
    if value is None:
        return 0
    if is_array(value):
        return len(value)
    return 1


def implode(glue: Any, pieces: Any = None) -> str:
    """Join values with glue; ``implode(pieces)`` and ``implode(pieces, glue)`` also work."""
    if pieces is None:
        glue, pieces = "", glue
    elif is_array(glue) and not is_array(pieces):
        glue, pieces = pieces, glue
    if not is_array(pieces):
        return to_text(pieces)
    items = pieces.values() if is_mapping(pieces) else pieces
    return to_text(glue).join(to_text(v) for v in items)


def _jsonable(value: Any) -> Any:
    if is_mapping(value):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if is_array(value):
        return [_jsonable(v) for v in value]
    if is_object(value):
        attrs = getattr(value, "__dict__", None) or {}
        return {k: _jsonable(v) for k, v in attrs.items() if not k.startswith("_")}
    return value


def json_encode(value: Any) -> str:
    return json.dumps(_jsonable(value), ensure_ascii=False)


_NEWLINE_RE = re.compile(r"(\r\n|\n\r|\n|\r)")


def nl2br(value: Any) -> str:
    return _NEWLINE_RE.sub(r"<br />\1", to_text(value))


DEFAULT_CALLBACKS: Dict[str, Callback] = {
    "htmlspecialchars": htmlspecialchars,
    "strtoupper": strtoupper,
    "strtolower": strtolower,
    "ucfirst": ucfirst,
    "trim": trim,
    "count": count,
    "implode": implode,
    "json_encode": json_encode,
    "nl2br": nl2br,
}


# ---------------------------- dump ---------------------------- #

def debug_var(name: str, value: Any) -> str:
    """One ``<li>`` line of a debug listing: ``{NAME} => value``."""
    if is_number(value):
        shown = format_number(value)
    elif isinstance(value, str) and parse_numeric(value) is not None:
        shown = value
    elif is_object(value):
        shown = f"{type(value).__name__} {json_encode(value)}"
    else:
        shown = "&quot;" + htmlspecialchars(to_text(value)) + "&quot;"
    return "<li>{" + htmlspecialchars(name) + "} =&gt; <em>" + shown + "</em></li>"


def _dump_lines(key: str, value: Any, level: int, out: List[str]) -> None:
    if level > DUMP_MAX_LEVEL:
        return
    if is_array(value):
        items = value.items() if is_mapping(value) else enumerate(value)
        for sub, item in sorted(items, key=lambda kv: str(kv[0])):
            _dump_lines(f"{key}.{sub}", item, level + 1, out)
    elif isinstance(value, str):
        out.append(debug_var(key, value))


def dump_html(key: str, value: Any) -> str:
    """
    HTML listing of every string leaf under value.

    Keys are sorted at each level; nesting deeper than DUMP_MAX_LEVEL
    is not shown.
    """
    lines: List[str] = []
    _dump_lines(key, value, 0, lines)
    return '<ul class="dump">' + "".join(lines) + "</ul>"


# ---------------------------- registry ---------------------------- #

class CallbackRegistry:
    """
    Name → callable mapping consulted by the variable resolver.

    Usage::

        registry = CallbackRegistry()
        registry.register("money", lambda v: f"{float(v):.2f}")

        @registry.register("slug")
        def slug(value): ...
    """

    def __init__(self, functions: Optional[Mapping[str, Callback]] = None, *, defaults: bool = True):
        self._functions: Dict[str, Callback] = dict(DEFAULT_CALLBACKS) if defaults else {}
        if functions:
            for name, fn in functions.items():
                self.register(name, fn)

    def register(self, name: str, fn: Optional[Callback] = None):
        """
        Register a callable under name. Without ``fn`` works as a decorator.
        """
        if fn is None:
            def decorator(func: Callback) -> Callback:
                self.register(name, func)
                return func
            return decorator

        if not re.fullmatch(r"\w+", name):
            raise ValueError(f"Invalid callback name: {name!r}")
        if not callable(fn):
            raise TypeError(f"Callback {name!r} is not callable")
        if name in self._functions:
            logger.debug("Callback %s re-registered", name)
        self._functions[name] = fn
        return fn

    def unregister(self, name: str) -> None:
        self._functions.pop(name, None)

    def get(self, name: str) -> Optional[Callback]:
        return self._functions.get(name)

    def names(self) -> Iterable[str]:
        return sorted(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions


__all__ = [
    "Callback",
    "CallbackRegistry",
    "DEFAULT_CALLBACKS",
    "debug_var",
    "dump_html",
]

"""
Debug capture of template variables.

With ``debug`` on, the first parse() of every block records a snapshot of
the variable bag: keys sorted, one level of mapping/sequence nesting
flattened to ``KEY.SUB``, long strings cut to 60 characters plus ``...``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Set

from ..callbacks import debug_var, htmlspecialchars
from ..values import is_array, is_mapping

TRUNCATE_AT = 60

DebugData = Dict[str, Dict[str, Dict[str, Any]]]


def _shorten(value: Any) -> Any:
    if isinstance(value, str) and len(value) > TRUNCATE_AT:
        return value[:TRUNCATE_AT] + "..."
    return value


def _items(value: Any):
    return value.items() if is_mapping(value) else enumerate(value)


class DebugLog:
    """file name → block name → {tag: value}."""

    def __init__(self):
        self.data: DebugData = {}
        self._seen: Dict[str, Set[str]] = {}

    def record(self, file: str, block: str, variables: Mapping[str, Any]) -> None:
        seen = self._seen.setdefault(file, set())
        if block in seen:
            return
        seen.add(block)

        table = self.data.setdefault(file, {}).setdefault(block, {})
        for key in sorted(variables, key=str):
            value = variables[key]
            if is_array(value):
                for sub, item in _items(value):
                    table[f"{key}.{sub}"] = _shorten(item)
            else:
                table[str(key)] = _shorten(value)

    def render_html(self, file: str) -> str:
        """HTML report of everything recorded for one file."""
        out: List[str] = [f"<h1>{htmlspecialchars(file)}</h1>"]
        for block, tags in self.data.get(file, {}).items():
            title = f"{file} / " + block.replace(".", " / ")
            out.append(f"<h2>{htmlspecialchars(title)}</h2>")
            out.append("<ul>")
            for key, value in tags.items():
                if is_array(value):
                    out.extend(debug_var(f"{key}.{sub}", item) for sub, item in _items(value))
                else:
                    out.append(debug_var(key, value))
            out.append("</ul>")
        return "".join(out)


__all__ = ["DebugLog", "DebugData", "TRUNCATE_AT"]

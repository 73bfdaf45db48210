"""
Template value model.

Templates see a closed set of dynamically typed values:
null (None), bool, number (int/float), string, sequence (list/tuple),
mapping (dict-like) and opaque host objects.

This module gathers every coercion and comparison the engine needs, so that
nodes, the resolver and the expression evaluator share one set of rules.
Loose (``==``) and strict (``===``) equality are deliberately two different
functions.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, MutableMapping
from typing import Any, Dict, Optional, Sequence, Union

Number = Union[int, float]

_NUMERIC_RE = re.compile(r"^[ \t\n\r\v\f]*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?[ \t\n\r\v\f]*$")
_LEADING_NUMERIC_RE = re.compile(r"^[ \t\n\r\v\f]*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_INDEX_RE = re.compile(r"^(0|[1-9]\d*)$")


# ---------------------------- classification ---------------------------- #

def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (bool, int, float, str))


def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def is_array(value: Any) -> bool:
    """Sequence or mapping: the two shapes a template can index and iterate."""
    return is_sequence(value) or is_mapping(value)


def is_object(value: Any) -> bool:
    """Opaque host object: anything that is neither scalar nor array."""
    return not is_scalar(value) and not is_array(value)


def is_container(value: Any) -> bool:
    """Sequence, mapping or object-like value."""
    return not is_scalar(value)


def _as_dict(value: Any) -> Dict[Any, Any]:
    if is_mapping(value):
        return dict(value.items())
    return dict(enumerate(value))


def _public_attrs(obj: Any) -> Dict[str, Any]:
    attrs = getattr(obj, "__dict__", None) or {}
    return {k: v for k, v in attrs.items() if not str(k).startswith("_")}


# ---------------------------- numbers ---------------------------- #

def _number_from_match(text: str) -> Number:
    num = float(text)
    if math.isfinite(num) and num == int(num) and abs(num) < 2 ** 63:
        return int(num)
    return num


def parse_numeric(text: str) -> Optional[Number]:
    """
    Parse a fully numeric string.

    Integral values (including ``"1.0"`` and ``"1e3"``) become int,
    everything else float. Non-numeric strings give None.
    """
    if not _NUMERIC_RE.match(text):
        return None
    return _number_from_match(text.strip())


def to_number(value: Any) -> Number:
    """
    Numeric coercion for arithmetic operators.

    Strings use their numeric prefix (``"5 apples"`` → 5); anything else → 0.

    Raises:
        TypeError: For sequences, mappings and objects
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if is_number(value):
        return value
    if isinstance(value, str):
        m = _LEADING_NUMERIC_RE.match(value)
        if not m:
            return 0
        return _number_from_match(m.group(0).strip())
    raise TypeError(f"Unsupported operand type: {type(value).__name__}")


def format_number(value: Number) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NAN"
    if math.isinf(value):
        return "INF" if value > 0 else "-INF"
    if value == int(value) and abs(value) < 1e15:
        return str(int(value))
    return f"{value:.14G}"


# ---------------------------- text ---------------------------- #

def _export_str(text: str) -> str:
    return "'" + text.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _export(value: Any, level: int) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value) if math.isfinite(value) else format_number(value)
    if isinstance(value, str):
        return _export_str(value)

    if is_object(value):
        inner = _export(_public_attrs(value), level)
        return f"\\{type(value).__name__}::__set_state({inner})"

    pad = "  " * level
    lines = ["array ("]
    for key, item in _as_dict(value).items():
        key_text = str(key) if isinstance(key, int) else _export_str(str(key))
        if is_container(item):
            lines.append(f"{pad}  {key_text} => ")
            lines.append(f"{pad}  {_export(item, level + 1)},")
        else:
            lines.append(f"{pad}  {key_text} => {_export(item, level + 1)},")
    lines.append(f"{pad})")
    return "\n".join(lines)


def export_value(value: Any) -> str:
    """Debug string form of a value (``var_export`` layout)."""
    return _export(value, 0)


def to_text(value: Any) -> str:
    """
    Interpolation form of a value.

    null and false render empty, true renders ``1``; containers fall back
    to their debug export.
    """
    if value is None or value is False:
        return ""
    if value is True:
        return "1"
    if isinstance(value, str):
        return value
    if is_number(value):
        return format_number(value)
    return export_value(value)


# ---------------------------- truthiness & comparison ---------------------------- #

def to_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0
    if isinstance(value, str):
        return value not in ("", "0")
    if is_array(value):
        return len(value) > 0
    return True


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def compare(a: Any, b: Any) -> int:
    """
    Loose three-way comparison (-1, 0, 1).

    Rules:
    - null vs string compares the string with ``""``
    - null or bool on either side compares truthiness
    - numbers and numeric strings compare numerically
    - a number vs a non-numeric string compares as strings
    - arrays compare by size, then element by element
    """
    if a is None and isinstance(b, str):
        return _cmp("", b)
    if b is None and isinstance(a, str):
        return _cmp(a, "")
    if a is None or b is None or isinstance(a, bool) or isinstance(b, bool):
        return _cmp(to_bool(a), to_bool(b))

    if is_number(a) and is_number(b):
        return _cmp(a, b)

    if isinstance(a, str) and isinstance(b, str):
        na, nb = parse_numeric(a), parse_numeric(b)
        if na is not None and nb is not None:
            return _cmp(na, nb)
        return _cmp(a, b)

    if is_number(a) and isinstance(b, str):
        nb = parse_numeric(b)
        return _cmp(a, nb) if nb is not None else _cmp(format_number(a), b)
    if isinstance(a, str) and is_number(b):
        na = parse_numeric(a)
        return _cmp(na, b) if na is not None else _cmp(a, format_number(b))

    if is_array(a) and is_array(b):
        if len(a) != len(b):
            return _cmp(len(a), len(b))
        da, db = _as_dict(a), _as_dict(b)
        for key, item in da.items():
            if key not in db:
                return 1
            res = compare(item, db[key])
            if res:
                return res
        return 0

    # arrays are always greater than scalars; objects are not ordered
    if is_array(a) and is_scalar(b):
        return 1
    if is_scalar(a) and is_array(b):
        return -1
    return 0 if a == b else 1


def loose_equals(a: Any, b: Any) -> bool:
    """``==`` semantics."""
    if is_array(a) and is_array(b):
        da, db = _as_dict(a), _as_dict(b)
        return da.keys() == db.keys() and all(loose_equals(da[k], db[k]) for k in da)
    if is_container(a) or is_container(b):
        other = b if is_container(a) else a
        if other is None or isinstance(other, bool):
            return to_bool(a) == to_bool(b)
        if is_container(a) and is_container(b):
            return a == b
        return False
    return compare(a, b) == 0


def strict_equals(a: Any, b: Any) -> bool:
    """``===`` semantics: same type and same value; objects by identity."""
    if is_array(a) and is_array(b):
        if is_mapping(a) != is_mapping(b) and not (len(a) == 0 and len(b) == 0):
            return False
        ia, ib = list(_as_dict(a).items()), list(_as_dict(b).items())
        return len(ia) == len(ib) and all(
            ka == kb and strict_equals(va, vb) for (ka, va), (kb, vb) in zip(ia, ib)
        )
    if is_object(a) or is_object(b):
        return a is b
    return type(a) is type(b) and a == b


def contains(haystack: Any, needle: Any) -> bool:
    """``HAS``: array membership with loose comparison."""
    if not is_array(haystack):
        return False
    items = haystack.values() if is_mapping(haystack) else haystack
    return any(loose_equals(item, needle) for item in items)


def has_substring(haystack: Any, needle: Any) -> bool:
    """``~=``: both strings and needle occurs in haystack."""
    return isinstance(haystack, str) and isinstance(needle, str) and needle in haystack


# ---------------------------- paths ---------------------------- #

def get_item(value: Any, key: str) -> Any:
    """
    One step of dotted-path descent; None when the key is missing
    or the value cannot be indexed.
    """
    if is_mapping(value):
        if key in value:
            return value[key]
        if _INDEX_RE.match(key) and int(key) in value:
            return value[int(key)]
        return None
    if is_sequence(value):
        if _INDEX_RE.match(key):
            idx = int(key)
            if idx < len(value):
                return value[idx]
        return None
    if is_object(value):
        if key.startswith("_"):
            return None
        return getattr(value, key, None)
    return None


def get_path(value: Any, keys: Sequence[str]) -> Any:
    for key in keys:
        if not is_container(value):
            return None
        value = get_item(value, key)
    return value


def set_path(root: MutableMapping, keys: Sequence[str], value: Any) -> None:
    """
    Set ``root[k1][k2]...[kn] = value``, creating intermediate mappings.

    A non-mapping intermediate value is replaced by a new mapping.
    """
    if not keys:
        raise ValueError("Empty path")
    target: MutableMapping = root
    for key in keys[:-1]:
        nxt = target.get(key)
        if not isinstance(nxt, MutableMapping):
            nxt = {}
            target[key] = nxt
        target = nxt
    target[keys[-1]] = value


__all__ = [
    "is_number",
    "is_scalar",
    "is_sequence",
    "is_mapping",
    "is_array",
    "is_object",
    "is_container",
    "parse_numeric",
    "to_number",
    "format_number",
    "export_value",
    "to_text",
    "to_bool",
    "compare",
    "loose_equals",
    "strict_equals",
    "contains",
    "has_substring",
    "get_item",
    "get_path",
    "set_path",
]

"""
Variable references: ``{NAME.key.key|callback(args)|callback2}``.

A reference is compiled once from its tag body and resolved on every render
in a fixed order: name lookup, dotted-path descent, then the callback chain.
Resolution never raises for missing data. Undefined variables and paths
yield None, and an unregistered callback makes the tag render its own source.
Exceptions raised by host callbacks propagate.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from .callbacks import dump_html
from .context import RenderContext
from .tags import interpolate
from .tokenizer import ARGUMENT_DELIMITERS, parse_argument, split_chain, tokenize
from .values import get_path, is_container, to_text

logger = logging.getLogger(__name__)

GLOBALS_NAME = "PHP"
THIS = "$this"
_THIS_PLACEHOLDER = "~~=={this-placeholder}==~~"

_CALL_RE = re.compile(r"(\w+)\s*\((.*)\)", re.DOTALL)


@dataclass(frozen=True)
class CallbackCall:
    """
    One link of a callback chain.

    ``args`` is None for a bare ``|name``: the running value is then passed
    as the only argument.
    """
    name: str
    args: Optional[Tuple[Any, ...]]
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "args": None if self.args is None else [_arg_to_dict(a) for a in self.args],
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CallbackCall:
        raw_args = data.get("args")
        args = None if raw_args is None else tuple(_arg_from_dict(a) for a in raw_args)
        return cls(name=data["name"], args=args, source=data.get("source", data["name"]))


@dataclass(frozen=True)
class VariableReference:
    source: str
    name: str
    keys: Tuple[str, ...] = ()
    callbacks: Tuple[CallbackCall, ...] = ()

    @property
    def path(self) -> str:
        """Name plus dotted keys, without callbacks."""
        return ".".join((self.name,) + self.keys)

    def to_source(self) -> str:
        return "{" + self.source + "}"

    # ---------------------------- resolution ---------------------------- #

    def resolve(self, ctx: RenderContext) -> Any:
        if self.name == GLOBALS_NAME:
            value: Any = ctx.host_globals
        elif self.name in ctx.vars:
            value = ctx.vars[self.name]
        else:
            logger.debug("Undefined variable {%s}", self.name)
            value = None

        if self.keys:
            value = get_path(value, self.keys)
            if value is None:
                logger.debug("Undefined path {%s}", self.path)

        for call in self.callbacks:
            if call.name == "dump" and call.args is None:
                value = dump_html(self.path, value)
                continue

            fn = ctx.registry.get(call.name)
            if fn is None:
                logger.debug("Unresolved callback '%s' in {%s}", call.name, self.source)
                return self.to_source()

            if call.args is None:
                value = fn(value)
            else:
                value = fn(*[self._argument(arg, value, ctx) for arg in call.args])

        return value

    @staticmethod
    def _argument(arg: Any, this: Any, ctx: RenderContext) -> Any:
        if isinstance(arg, VariableReference):
            return arg.resolve(ctx)
        if not isinstance(arg, str):
            return arg
        if arg == THIS and is_container(this):
            return this

        text = arg
        if "{" in text:
            # results of embedded tags keep their own literal $this
            text = interpolate(
                text,
                lambda body: to_text(parse_reference(body).resolve(ctx)).replace(THIS, _THIS_PLACEHOLDER),
            )
        if THIS in text:
            text = text.replace(THIS, to_text(this))
        return text.replace(_THIS_PLACEHOLDER, THIS)

    # ---------------------------- serialization ---------------------------- #

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "name": self.name,
            "keys": list(self.keys),
            "callbacks": [c.to_dict() for c in self.callbacks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> VariableReference:
        return cls(
            source=data["source"],
            name=data["name"],
            keys=tuple(data.get("keys") or ()),
            callbacks=tuple(CallbackCall.from_dict(c) for c in data.get("callbacks") or ()),
        )


def _arg_to_dict(arg: Any) -> Dict[str, Any]:
    if isinstance(arg, VariableReference):
        return {"ref": arg.to_dict()}
    return {"value": arg}


def _arg_from_dict(data: Dict[str, Any]) -> Any:
    if "ref" in data:
        return VariableReference.from_dict(data["ref"])
    return data.get("value")


@lru_cache(maxsize=4096)
def parse_reference(source: str) -> VariableReference:
    """
    Compile a tag body (text between the braces).

    Example:
        ``CATEGORY.title|trim|implode(', ', $this)`` →
        name ``CATEGORY``, keys ``("title",)``, two callbacks.
    """
    parts = split_chain(source)
    head = parts[0].strip()
    name, *keys = head.split(".")

    calls: List[CallbackCall] = []
    for part in parts[1:]:
        segment = part.strip()
        m = _CALL_RE.fullmatch(segment)
        if m:
            raw = tokenize(m.group(2).strip(), ARGUMENT_DELIMITERS, trim_quotes=False)
            args = tuple(parse_argument(token) for token in raw)
            calls.append(CallbackCall(name=m.group(1), args=args, source=segment))
        else:
            calls.append(CallbackCall(name=segment, args=None, source=segment))

    return VariableReference(source=source, name=name, keys=tuple(keys), callbacks=tuple(calls))


def render_embedded(text: str, ctx: RenderContext) -> str:
    """Substitute every tag inside a plain string."""
    return interpolate(text, lambda body: to_text(parse_reference(body).resolve(ctx)))


__all__ = [
    "GLOBALS_NAME",
    "THIS",
    "CallbackCall",
    "VariableReference",
    "parse_reference",
    "render_embedded",
]

"""
Compiled template tree.

Four node kinds make up a template:
- DataNode: literal text interleaved with variable tags
- BlockNode: named container; accumulates rendered output on parse() and
  hands it out (flushing) on text()
- LoopNode: ``<!-- FOR -->``, renders its children once per collection item
- ConditionalNode: ``<!-- IF -->``, renders one of two child sequences

Only BlockNode accumulates; loops and conditionals render directly on
every text() call.

Children of a container are an insertion-ordered dict: named blocks are
keyed by name, everything else by a running integer position.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from ..conditions import Expression, evaluate
from ..context import RenderContext
from ..tags import iter_segments
from ..values import is_mapping, is_object, is_sequence, to_text
from ..variables import VariableReference, parse_reference

Segment = Union[str, int]
BlockPath = Tuple[Segment, ...]


class Node(ABC):
    """Base of all template nodes."""

    kind: str = ""

    @abstractmethod
    def text(self, ctx: RenderContext) -> str:
        """Rendered output of the node."""
        pass

    @abstractmethod
    def tags(self) -> Set[str]:
        """Names of the variables referenced by tags in literal text."""
        pass

    @abstractmethod
    def to_source(self) -> str:
        """TPL representation of the node."""
        pass

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        pass


Children = Dict[Segment, Node]


def render_children(children: Children, ctx: RenderContext) -> str:
    return "".join(child.text(ctx) for child in children.values())


def children_tags(children: Children) -> Set[str]:
    names: Set[str] = set()
    for child in children.values():
        names |= child.tags()
    return names


def children_source(children: Children) -> str:
    parts: List[str] = []
    for key, child in children.items():
        if isinstance(key, str):
            parts.append(f"<!-- BEGIN: {key} -->\n{child.to_source()}<!-- END: {key} -->\n")
        else:
            parts.append(child.to_source())
    return "".join(parts)


def children_to_list(children: Children) -> List[List[Any]]:
    return [[key, child.to_dict()] for key, child in children.items()]


def children_from_list(items: Iterable[List[Any]]) -> Children:
    return {key: node_from_dict(data) for key, data in items}


# ---------------------------- Data ---------------------------- #

class DataNode(Node):
    kind = "data"

    def __init__(self, chunks: List[Union[str, VariableReference]]):
        self.chunks = chunks

    @classmethod
    def from_text(cls, code: str) -> DataNode:
        chunks: List[Union[str, VariableReference]] = []
        for chunk, is_tag in iter_segments(code):
            chunks.append(parse_reference(chunk) if is_tag else chunk)
        return cls(chunks)

    def text(self, ctx: RenderContext) -> str:
        out: List[str] = []
        for chunk in self.chunks:
            if isinstance(chunk, VariableReference):
                out.append(to_text(chunk.resolve(ctx)))
            else:
                out.append(chunk)
        return "".join(out)

    def tags(self) -> Set[str]:
        return {c.name for c in self.chunks if isinstance(c, VariableReference)}

    def to_source(self) -> str:
        return "".join(c.to_source() if isinstance(c, VariableReference) else c for c in self.chunks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "chunks": [{"ref": c.to_dict()} if isinstance(c, VariableReference) else c for c in self.chunks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DataNode:
        chunks: List[Union[str, VariableReference]] = []
        for c in data["chunks"]:
            chunks.append(VariableReference.from_dict(c["ref"]) if isinstance(c, dict) else c)
        return cls(chunks)

    def __repr__(self) -> str:
        return f"DataNode({self.to_source()!r})"


# ---------------------------- Block ---------------------------- #

class BlockNode(Node):
    kind = "block"

    def __init__(self, name: str, children: Optional[Children] = None):
        self.name = name
        self.children: Children = children if children is not None else {}
        self._buffer: List[str] = []

    def parse(self, ctx: RenderContext) -> None:
        """Render children against the current bag and append to the buffer."""
        self._buffer.append(render_children(self.children, ctx))

    def reset(self) -> None:
        self._buffer.clear()

    def text(self, ctx: RenderContext) -> str:
        out = "".join(self._buffer)
        self._buffer.clear()
        return out

    def tags(self) -> Set[str]:
        return children_tags(self.children)

    def to_source(self) -> str:
        return children_source(self.children)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, "name": self.name, "children": children_to_list(self.children)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BlockNode:
        return cls(data["name"], children_from_list(data["children"]))

    def __repr__(self) -> str:
        return f"BlockNode({self.name!r}, {len(self.children)} children)"


# ---------------------------- Loop ---------------------------- #

def _iter_collection(value: Any) -> Optional[Iterable[Tuple[Any, Any]]]:
    if is_mapping(value):
        return value.items()
    if is_sequence(value):
        return enumerate(value)
    if is_object(value) and hasattr(value, "__iter__") and not isinstance(value, (bytes, bytearray)):
        return enumerate(value)
    return None


class LoopNode(Node):
    """
    ``<!-- FOR {key}, {value} IN {set} -->``.

    Bindings are written straight into the variable bag and stay there
    after the loop ends.
    """
    kind = "loop"

    def __init__(self, value_var: str, collection: VariableReference,
                 children: Optional[Children] = None, key_var: Optional[str] = None):
        self.value_var = value_var
        self.key_var = key_var
        self.collection = collection
        self.children: Children = children if children is not None else {}

    def text(self, ctx: RenderContext) -> str:
        items = _iter_collection(self.collection.resolve(ctx))
        if items is None or not self.children:
            return ""
        out: List[str] = []
        for key, value in items:
            ctx.vars[self.value_var] = value
            if self.key_var:
                ctx.vars[self.key_var] = key
            out.append(render_children(self.children, ctx))
        return "".join(out)

    def tags(self) -> Set[str]:
        return children_tags(self.children)

    def header(self) -> str:
        head = f"{{{self.key_var}}}, {{{self.value_var}}}" if self.key_var else f"{{{self.value_var}}}"
        return f"{head} IN {self.collection.to_source()}"

    def to_source(self) -> str:
        return f"<!-- FOR {self.header()} -->\n{children_source(self.children)}<!-- ENDFOR -->\n"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "key": self.key_var,
            "value": self.value_var,
            "set": self.collection.to_dict(),
            "children": children_to_list(self.children),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> LoopNode:
        return cls(
            value_var=data["value"],
            collection=VariableReference.from_dict(data["set"]),
            children=children_from_list(data["children"]),
            key_var=data.get("key"),
        )


# ---------------------------- Conditional ---------------------------- #

class ConditionalNode(Node):
    kind = "if"

    def __init__(self, expression: Expression,
                 if_children: Optional[Children] = None, else_children: Optional[Children] = None):
        self.expression = expression
        self.if_children: Children = if_children if if_children is not None else {}
        self.else_children: Children = else_children if else_children is not None else {}

    def branch(self, index: int) -> Children:
        """Branch 0 is the IF part, branch 1 the ELSE part."""
        return self.if_children if index == 0 else self.else_children

    def text(self, ctx: RenderContext) -> str:
        if evaluate(self.expression, ctx):
            return render_children(self.if_children, ctx)
        return render_children(self.else_children, ctx)

    def tags(self) -> Set[str]:
        return children_tags(self.if_children) | children_tags(self.else_children)

    def to_source(self) -> str:
        out = f"<!-- IF {self.expression.source} -->\n{children_source(self.if_children)}"
        if self.else_children:
            out += f"<!-- ELSE -->\n{children_source(self.else_children)}"
        return out + "<!-- ENDIF -->\n"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "expr": self.expression.to_dict(),
            "if": children_to_list(self.if_children),
            "else": children_to_list(self.else_children),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ConditionalNode:
        return cls(
            Expression.from_dict(data["expr"]),
            children_from_list(data["if"]),
            children_from_list(data["else"]),
        )


_NODE_TYPES = {
    DataNode.kind: DataNode,
    BlockNode.kind: BlockNode,
    LoopNode.kind: LoopNode,
    ConditionalNode.kind: ConditionalNode,
}


def node_from_dict(data: Dict[str, Any]) -> Node:
    """
    Rebuild a node from its ``to_dict()`` form.

    Raises:
        ValueError: On unknown node type
    """
    node_type = _NODE_TYPES.get(data.get("type"))
    if node_type is None:
        raise ValueError(f"Unknown node type: {data.get('type')!r}")
    return node_type.from_dict(data)


__all__ = [
    "Segment",
    "BlockPath",
    "Children",
    "Node",
    "DataNode",
    "BlockNode",
    "LoopNode",
    "ConditionalNode",
    "node_from_dict",
    "render_children",
]

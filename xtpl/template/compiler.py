"""
Block compiler: TPL markup → node tree + path index + tag set.

Markup::

    <!-- BEGIN: NAME --> ... <!-- END: NAME -->
    <!-- FOR {KEY}, {VALUE} IN {SET} --> ... <!-- ENDFOR -->
    <!-- IF expression --> ... <!-- ELSE --> ... <!-- ENDIF -->

Root-level text outside BEGIN/END pairs is dropped. Inside a block the
compiler repeatedly takes the earliest construct opener, finds its
terminator by depth counting and compiles the body recursively.

A marker that is alone on its line (only spaces/tabs around it) takes its
indentation and line break with it, so structural markup leaves no blank
lines in the output.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..conditions import compile_expression
from ..config import EngineConfig
from ..errors import CompileError
from ..variables import parse_reference
from .nodes import BlockNode, BlockPath, Children, ConditionalNode, DataNode, LoopNode

logger = logging.getLogger(__name__)

_BEGIN_RE = re.compile(r"<!--\s*BEGIN:\s*(\w+)\s*-->")
# headers never run past the closing "-->"; an empty header still matches
_HEADER = r"(?:\s+((?:(?!-->).)*?))?"
_FOR_RE = re.compile(r"<!--\s*FOR" + _HEADER + r"\s*-->", re.DOTALL)
_IF_RE = re.compile(r"<!--\s*IF" + _HEADER + r"\s*-->", re.DOTALL)
_LOOP_MARKERS_RE = re.compile(r"<!--\s*(?:FOR(?:\s+(?:(?!-->).)*?)?|(ENDFOR))\s*-->", re.DOTALL)
_IF_MARKERS_RE = re.compile(r"<!--\s*(?:IF(?:\s+(?:(?!-->).)*?)?|(ELSE)|(ENDIF))\s*-->", re.DOTALL)

_LOOP_KEY_VALUE_RE = re.compile(r"^\{(\w+)\}\s*,\s*\{(\w+)\}\s*IN\s*\{((?:[\w.\-]+)(?:\|.+?)?)\}$", re.DOTALL)
_LOOP_VALUE_RE = re.compile(r"^\{(\w+)\}\s*IN\s*\{((?:[\w.\-]+)(?:\|.+?)?)\}$", re.DOTALL)

_ROOT_TRIM = " \t\n\r\0\x0b"

Span = Tuple[int, int]


def index_glue(path: BlockPath) -> str:
    """Full block name: named segments joined with dots."""
    return ".".join(seg for seg in path if isinstance(seg, str))


def _end_marker_re(name: str) -> re.Pattern:
    return re.compile(r"<!--\s*(BEGIN|END):\s*" + re.escape(name) + r"\s*-->")


def find_block_end(code: str, start: int, name: str) -> Optional[re.Match]:
    """END marker closing a BEGIN of ``name`` whose body starts at ``start``."""
    depth = 1
    for m in _end_marker_re(name).finditer(code, start):
        depth += 1 if m.group(1) == "BEGIN" else -1
        if depth == 0:
            return m
    return None


def _starts_line(code: str, pos: int, line_start: bool) -> bool:
    if pos == 0:
        return line_start
    return code[pos - 1] in "\r\n"


def marker_span(code: str, start: int, end: int, line_start: bool) -> Span:
    """
    Extent of a marker including its line when it stands alone on it.

    Args:
        code: Unit text
        start: Marker start
        end: Marker end
        line_start: Whether position 0 of ``code`` begins a line
    """
    left = start
    while left > 0 and code[left - 1] in " \t":
        left -= 1
    at_line_start = (left == 0 and line_start) or (left > 0 and code[left - 1] in "\r\n")
    if not at_line_start:
        return start, end

    right = end
    n = len(code)
    while right < n and code[right] in " \t":
        right += 1
    if right == n:
        return left, right
    if code.startswith("\r\n", right):
        return left, right + 2
    if code[right] in "\r\n":
        return left, right + 1
    return start, end


def cleanup_html(html: str) -> str:
    """Collapse insignificant HTML whitespace."""
    html = "\n".join(line.strip(_ROOT_TRIM) for line in html.split("\n"))
    html = re.sub(r"[\r\n\t]+<", " <", html)
    html = re.sub(r">[\r\n\t]+", ">", html)
    html = re.sub(r"[\t\f]+", " ", html)
    html = re.sub(r" {2,}", " ", html)
    return _HTML_TAG_RE.sub(lambda m: re.sub(r"\s+", " ", m.group(0)), html)


_HTML_TAG_RE = re.compile(
    r"""<\/?\w+((\s+(\w|\w[\w-]*\w)(\s*=\s*(?:".*?"|'.*?'|[^'">\s]+))?)+\s*|\s*)\/?>""",
    re.IGNORECASE,
)


@dataclass
class CompiledTemplate:
    """
    Result of compilation.

    Attributes:
        blocks: Root blocks by name, in source order
        index: Full block name → BlockPath
        tags: Variable names referenced in literal text
    """
    blocks: Dict[str, BlockNode] = field(default_factory=dict)
    index: Dict[str, BlockPath] = field(default_factory=dict)
    tags: Set[str] = field(default_factory=set)


class BlockCompiler:
    """Compiles TPL source into a CompiledTemplate."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def prepare(self, code: str) -> str:
        """Source transformations applied before hashing and compiling."""
        if self.config.cleanup:
            code = cleanup_html(code)
        return code

    def compile(self, code: str) -> CompiledTemplate:
        """
        Compile prepared source.

        Raises:
            CompileError: On unclosed FOR/IF, malformed FOR header,
                duplicate ELSE or unbalanced parentheses in a condition
        """
        result = CompiledTemplate()
        pos = 0
        while True:
            begin = _BEGIN_RE.search(code, pos)
            if begin is None:
                break
            name = begin.group(1)
            end = find_block_end(code, begin.end(), name)
            if end is None:
                logger.debug("Root block %s has no END marker, skipped", name)
                pos = begin.end()
                continue

            body = code[begin.end():end.start()].strip(_ROOT_TRIM)
            path: BlockPath = (name,)
            result.index[name] = path
            block = BlockNode(name, self.compile_unit(body, path, result.index))
            result.blocks[name] = block
            pos = end.end()

        for block in result.blocks.values():
            result.tags |= block.tags()
        logger.debug("Compiled %d root block(s), %d indexed", len(result.blocks), len(result.index))
        return result

    # ---------------------------- units ---------------------------- #

    def compile_unit(self, code: str, path: BlockPath, index: Dict[str, BlockPath],
                     line_start: bool = True) -> Children:
        """
        Compile a block/loop/branch body into its ordered children.

        Args:
            code: Body text
            path: Path of the container owning the children
            index: Index being built (named blocks are registered here)
            line_start: Whether the body begins at the start of a line
        """
        children: Children = {}
        counter = 0
        pos = 0

        def add_data(text: str) -> None:
            nonlocal counter
            if text:
                children[counter] = DataNode.from_text(text)
                counter += 1

        while pos < len(code):
            found = self._next_opener(code, pos)
            if found is None:
                break
            kind, opener = found
            if kind != "BEGIN" and not (opener.group(1) or "").strip():
                raise CompileError("Empty IF condition" if kind == "IF" else "Empty FOR header", opener.group(0))
            open_start, open_end = marker_span(code, opener.start(), opener.end(), line_start)
            add_data(code[pos:open_start])
            body_line_start = _starts_line(code, open_end, line_start)

            if kind == "BEGIN":
                name = opener.group(1)
                end = find_block_end(code, opener.end(), name)
                close_start, close_end = marker_span(code, end.start(), end.end(), line_start)
                body = code[open_end:close_start]
                bpath = path + (name,)
                index[index_glue(bpath)] = bpath
                children[name] = BlockNode(name, self.compile_unit(body, bpath, index, body_line_start))
                pos = close_end

            elif kind == "FOR":
                close = self._find_loop_end(code, opener)
                close_start, close_end = marker_span(code, close.start(), close.end(), line_start)
                loop = self._make_loop(opener, code[open_end:close_start], path + (counter,), index,
                                       body_line_start)
                children[counter] = loop
                counter += 1
                pos = close_end

            else:
                else_marker, close = self._find_if_end(code, opener)
                close_start, close_end = marker_span(code, close.start(), close.end(), line_start)
                bpath = path + (counter,)
                expression = compile_expression(opener.group(1))
                if else_marker is None:
                    if_code, else_code = code[open_end:close_start], ""
                    else_line_start = True
                else:
                    else_start, else_end = marker_span(code, else_marker.start(), else_marker.end(), line_start)
                    if_code, else_code = code[open_end:else_start], code[else_end:close_start]
                    else_line_start = _starts_line(code, else_end, line_start)
                children[counter] = ConditionalNode(
                    expression,
                    self.compile_unit(if_code, bpath + (0,), index, body_line_start),
                    self.compile_unit(else_code, bpath + (1,), index, else_line_start),
                )
                counter += 1
                pos = close_end

        add_data(code[pos:])
        return children

    # ---------------------------- scanning ---------------------------- #

    @staticmethod
    def _next_opener(code: str, pos: int) -> Optional[Tuple[str, re.Match]]:
        candidates: List[Tuple[str, re.Match]] = []

        begin = _BEGIN_RE.search(code, pos)
        while begin is not None and find_block_end(code, begin.end(), begin.group(1)) is None:
            begin = _BEGIN_RE.search(code, begin.end())
        if begin is not None:
            candidates.append(("BEGIN", begin))

        loop = _FOR_RE.search(code, pos)
        if loop is not None:
            candidates.append(("FOR", loop))

        cond = _IF_RE.search(code, pos)
        if cond is not None:
            candidates.append(("IF", cond))

        if not candidates:
            return None
        return min(candidates, key=lambda c: c[1].start())

    @staticmethod
    def _find_loop_end(code: str, opener: re.Match) -> re.Match:
        depth = 1
        for m in _LOOP_MARKERS_RE.finditer(code, opener.end()):
            depth += -1 if m.group(1) else 1
            if depth == 0:
                return m
        raise CompileError("Loop not closed", opener.group(0))

    @staticmethod
    def _find_if_end(code: str, opener: re.Match) -> Tuple[Optional[re.Match], re.Match]:
        depth = 1
        else_marker: Optional[re.Match] = None
        for m in _IF_MARKERS_RE.finditer(code, opener.end()):
            if m.group(1):
                if depth == 1:
                    if else_marker is not None:
                        raise CompileError("Duplicate ELSE in logical block", opener.group(0))
                    else_marker = m
            elif m.group(2):
                depth -= 1
                if depth == 0:
                    return else_marker, m
            else:
                depth += 1
        raise CompileError("Logical block not closed", opener.group(0))

    def _make_loop(self, opener: re.Match, body: str, path: BlockPath, index: Dict[str, BlockPath],
                   line_start: bool) -> LoopNode:
        header = opener.group(1).strip()
        m = _LOOP_KEY_VALUE_RE.match(header)
        if m:
            key_var, value_var, collection = m.group(1), m.group(2), m.group(3)
        else:
            m = _LOOP_VALUE_RE.match(header)
            if not m:
                raise CompileError("Malformed FOR header", opener.group(0))
            key_var, value_var, collection = None, m.group(1), m.group(2)

        return LoopNode(
            value_var=value_var,
            collection=parse_reference(collection),
            children=self.compile_unit(body, path, index, line_start),
            key_var=key_var,
        )


def compile_template(code: str, config: Optional[EngineConfig] = None) -> CompiledTemplate:
    compiler = BlockCompiler(config)
    return compiler.compile(compiler.prepare(code))


__all__ = [
    "BlockCompiler",
    "CompiledTemplate",
    "compile_template",
    "cleanup_html",
    "index_glue",
    "marker_span",
]

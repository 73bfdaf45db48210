"""
Template session: one compiled template plus one variable bag.

Typical use::

    tpl = Template("themes/page.tpl", config)
    tpl.assign({"TITLE": "Hello", "ROWS": rows})
    for row in rows:
        tpl.assign("ROW", row)
        tpl.parse("MAIN.ROW")
    tpl.parse("MAIN")
    html = tpl.text("MAIN")

parse() renders a block against the current bag and appends the result to
the block's buffer; text() returns the buffer and clears it. Nested blocks
must be parsed before their parents.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, TextIO, Union

from ..callbacks import CallbackRegistry
from ..config import EngineConfig
from ..context import RenderContext
from ..errors import InvalidNodeOperation, MissingTemplateFile
from ..values import get_path, set_path
from .cache import ArtifactCache, source_hash
from .compiler import BlockCompiler, CompiledTemplate
from .debug import DebugData, DebugLog
from .includes import IncludeExpander
from .nodes import BlockNode, ConditionalNode, LoopNode, Node, children_source
from .reader import FileSystemReader, SourceReader

logger = logging.getLogger(__name__)

DEFAULT_BLOCK = "MAIN"


class Template:
    """
    Block-structured template session.

    Args:
        path: Template source path
        config: Engine configuration (defaults if None)
        registry: Callbacks available to tags (default set if None)
        reader: Source reader (file system if None)
        debug_log: Shared debug capture (a private one if None)

    Raises:
        MissingTemplateFile: If the source does not exist
        CompileError: If the markup is broken
        CacheDirectoryUnwritable: If caching is on and the cache cannot be written
    """

    def __init__(
        self,
        path: Union[str, Path],
        config: Optional[EngineConfig] = None,
        *,
        registry: Optional[CallbackRegistry] = None,
        reader: Optional[SourceReader] = None,
        debug_log: Optional[DebugLog] = None,
    ):
        self._setup(config, registry, reader, debug_log)
        self.path = Path(path)
        if not self.reader.exists(self.path):
            raise MissingTemplateFile(self.path)
        self._load(self.reader.read(self.path), source_mtime=self.reader.mtime(self.path))

    @classmethod
    def from_string(
        cls,
        code: str,
        config: Optional[EngineConfig] = None,
        *,
        name: str = "string.tpl",
        registry: Optional[CallbackRegistry] = None,
        reader: Optional[SourceReader] = None,
        debug_log: Optional[DebugLog] = None,
    ) -> Template:
        """Compile a template from source text. String templates are never cached."""
        tpl = cls.__new__(cls)
        tpl._setup(config, registry, reader, debug_log)
        tpl.path = Path(name)
        tpl._load(code, source_mtime=None)
        return tpl

    def _setup(self, config, registry, reader, debug_log) -> None:
        self.config: EngineConfig = config or EngineConfig()
        self.registry: CallbackRegistry = registry or CallbackRegistry()
        self.reader: SourceReader = reader or FileSystemReader()
        self.debug_log: DebugLog = debug_log or DebugLog()
        self.vars: Dict[str, Any] = {}
        self._ctx = RenderContext(vars=self.vars, registry=self.registry, host_globals=self.config.host_globals)

    def _load(self, code: str, *, source_mtime: Optional[float]) -> None:
        if code.startswith("\ufeff"):
            code = code[1:]
        code = IncludeExpander(self.config, reader=self.reader, registry=self.registry).expand(code)
        compiler = BlockCompiler(self.config)
        code = compiler.prepare(code)
        self.source_hash = source_hash(code)

        use_cache = self.config.cache and source_mtime is not None
        cache = ArtifactCache(self.config)
        compiled: Optional[CompiledTemplate] = None
        if use_cache:
            paths = cache.paths_for(self.path, self.source_hash)
            compiled = cache.load(paths, source_mtime)
        if compiled is None:
            compiled = compiler.compile(code)
            if use_cache:
                cache.store(paths, compiled)
        self._compiled = compiled

    # ---------------------------- variables ---------------------------- #

    def assign(self, name: Union[str, Mapping[str, Any]], value: Any = None, prefix: str = "") -> Template:
        """
        Assign one variable or a mapping of variables.

        Dotted names (``"USER.name"``) set nested values, creating
        intermediate mappings.
        """
        if isinstance(name, Mapping):
            for key, val in name.items():
                self._assign_one(prefix + str(key), val)
        else:
            self._assign_one(prefix + name, value)
        return self

    def _assign_one(self, name: str, value: Any) -> None:
        if "." in name:
            set_path(self.vars, name.split("."), value)
        else:
            self.vars[name] = value

    def get(self, name: str) -> Any:
        """Current value of a variable (dotted names descend), None if unset."""
        return get_path(self.vars, name.split("."))

    # ---------------------------- blocks ---------------------------- #

    def parse(self, block: str = DEFAULT_BLOCK) -> Template:
        node = self._block(block, "parse")
        if node is None:
            logger.debug("Block %s not found in %s", block, self.path)
        else:
            node.parse(self._ctx)
        if self.config.debug:
            self.debug_log.record(self.path.name, block, self.vars)
        return self

    def reset(self, block: str = DEFAULT_BLOCK) -> Template:
        node = self._block(block, "reset")
        if node is not None:
            node.reset()
        return self

    def text(self, block: str = DEFAULT_BLOCK) -> str:
        node = self._locate(block)
        if not isinstance(node, Node):
            return ""
        return node.text(self._ctx)

    def out(self, block: str = DEFAULT_BLOCK, stream: Optional[TextIO] = None) -> Template:
        """Write the block text (or the debug report in debug-output mode)."""
        stream = stream or sys.stdout
        if self.config.debug and self.config.debug_output:
            stream.write(self.debug_log.render_html(self.path.name))
        else:
            stream.write(self.text(block))
        return self

    def has_block(self, name: str) -> bool:
        return name in self._compiled.index

    def has_tag(self, name: str) -> bool:
        return name in self._compiled.tags

    def get_tags(self) -> List[str]:
        return sorted(self._compiled.tags)

    def blocks(self) -> List[str]:
        """Full names of all blocks, in source order."""
        return list(self._compiled.index)

    def debug_data(self) -> DebugData:
        return self.debug_log.data

    # ---------------------------- navigation ---------------------------- #

    def _locate(self, block: str) -> Any:
        path = self._compiled.index.get(block)
        if not path:
            return None
        cur: Any = self._compiled.blocks
        for seg in path:
            if isinstance(cur, dict):
                cur = cur.get(seg)
            elif isinstance(cur, ConditionalNode):
                cur = cur.branch(seg) if seg in (0, 1) else None
            elif isinstance(cur, (BlockNode, LoopNode)):
                cur = cur.children.get(seg)
            else:
                cur = None
            if cur is None:
                return None
        return cur

    def _block(self, block: str, operation: str) -> Optional[BlockNode]:
        node = self._locate(block)
        if node is None:
            return None
        if not isinstance(node, BlockNode):
            raise InvalidNodeOperation(f"Calling {operation}() on {type(node).__name__} at '{block}'")
        return node

    def __str__(self) -> str:
        return children_source(self._compiled.blocks)


__all__ = ["Template", "DEFAULT_BLOCK"]

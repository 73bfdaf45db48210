"""
``{FILE "path"}`` expansion.

Runs on raw source before compilation. Tags inside the path are resolved
against the host globals. A path ending in ``.tpl`` that exists is replaced
by the file contents (expanded recursively); any other path is replaced by
its own text.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from ..callbacks import CallbackRegistry
from ..config import EngineConfig
from ..context import RenderContext
from ..errors import CompileError
from ..variables import render_embedded
from .reader import FileSystemReader, SourceReader

logger = logging.getLogger(__name__)

MAX_INCLUDE_DEPTH = 16

_FILE_RE = re.compile(r"""\{FILE\s+("|')(.+?)\1\}""")


class IncludeExpander:
    def __init__(self, config: EngineConfig, *, reader: Optional[SourceReader] = None,
                 registry: Optional[CallbackRegistry] = None):
        self.config = config
        self.reader = reader or FileSystemReader()
        self.registry = registry or CallbackRegistry()

    def expand(self, code: str, depth: int = 0) -> str:
        """
        Raises:
            CompileError: When includes nest deeper than MAX_INCLUDE_DEPTH
        """
        return _FILE_RE.sub(lambda m: self._include(m, depth + 1), code)

    def resolve_path(self, name: str) -> Path:
        path = Path(name)
        if path.is_absolute():
            return path
        root = self.config.include_root or Path.cwd()
        return root / path

    def _include(self, m: re.Match, depth: int) -> str:
        if depth > MAX_INCLUDE_DEPTH:
            raise CompileError(f"Includes nested deeper than {MAX_INCLUDE_DEPTH} levels", m.group(0))

        ctx = RenderContext(
            vars=dict(self.config.host_globals),
            registry=self.registry,
            host_globals=self.config.host_globals,
        )
        name = render_embedded(m.group(2), ctx)
        path = self.resolve_path(name)

        if name.lower().endswith(".tpl") and self.reader.exists(path):
            logger.debug("Including %s (depth %d)", path, depth)
            return self.expand(self.reader.read(path), depth)

        logger.debug("Include %s not found, kept as text", name)
        return name


__all__ = ["IncludeExpander", "MAX_INCLUDE_DEPTH"]

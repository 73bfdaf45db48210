"""
Block template compilation, caching and rendering sessions.
"""

from __future__ import annotations

from .cache import ArtifactCache, ArtifactPaths, CacheSnapshot
from .compiler import BlockCompiler, CompiledTemplate, compile_template
from .debug import DebugLog
from .nodes import BlockNode, ConditionalNode, DataNode, LoopNode, Node
from .reader import FileSystemReader, MemoryReader, SourceReader
from .session import DEFAULT_BLOCK, Template

__all__ = [
    "Template",
    "DEFAULT_BLOCK",
    "BlockCompiler",
    "CompiledTemplate",
    "compile_template",
    "Node",
    "DataNode",
    "BlockNode",
    "LoopNode",
    "ConditionalNode",
    "ArtifactCache",
    "ArtifactPaths",
    "CacheSnapshot",
    "DebugLog",
    "SourceReader",
    "FileSystemReader",
    "MemoryReader",
]

"""
On-disk cache of compiled templates.

Each compiled template is stored as three sibling JSON files under
``<cache_dir>/templates/``:
- ``<name>``: node tree
- ``<name>.idx``: block path index
- ``<name>.tags``: tag names

``<name>`` = sanitized source directory + ``_`` + stem + ``_`` + sha1 of the
post-include source + source extension. An artifact is reused only if all
three files exist, are non-empty, parse, and the source is not newer than
the tree file. Anything else counts as stale and gets recompiled.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..config import EngineConfig
from ..errors import CacheDirectoryUnwritable
from .compiler import CompiledTemplate
from .nodes import BlockNode, node_from_dict

logger = logging.getLogger(__name__)

CACHE_VERSION = 1


def source_hash(code: str) -> str:
    return hashlib.sha1(code.encode("utf-8")).hexdigest()


def artifact_name(source: Path, code_hash: str) -> str:
    dirname = source.parent.as_posix().replace("./", "_").replace("/", "_")
    return f"{dirname}_{source.stem}_{code_hash}{source.suffix}"


@dataclass(frozen=True)
class ArtifactPaths:
    tree: Path
    index: Path
    tags: Path

    def all(self) -> tuple[Path, Path, Path]:
        return self.tree, self.index, self.tags


@dataclass(frozen=True)
class CacheSnapshot:
    enabled: bool
    path: Path
    exists: bool
    size_bytes: int
    entries: int


class ArtifactCache:
    """Compiled-template store; one instance per engine config."""

    def __init__(self, config: EngineConfig):
        self.enabled = config.cache
        self.dir = config.templates_dir

    def paths_for(self, source: Path, code_hash: str) -> ArtifactPaths:
        tree = self.dir / artifact_name(source, code_hash)
        return ArtifactPaths(
            tree=tree,
            index=tree.with_name(tree.name + ".idx"),
            tags=tree.with_name(tree.name + ".tags"),
        )

    # --------------------------- LOAD / STORE --------------------------- #

    def load(self, paths: ArtifactPaths, source_mtime: float) -> Optional[CompiledTemplate]:
        """
        Returns:
            CompiledTemplate, or None when the artifact is missing or stale
        """
        if not self.enabled:
            return None
        for p in paths.all():
            try:
                if p.stat().st_size == 0:
                    logger.warning("Empty cache artifact %s, recompiling", p)
                    return None
            except OSError:
                logger.debug("Cache miss: %s", p.name)
                return None

        try:
            if source_mtime > paths.tree.stat().st_mtime:
                logger.warning("Template source is newer than %s, recompiling", paths.tree.name)
                return None
            tree = self._load_json(paths.tree)
            index = self._load_json(paths.index)
            tags = self._load_json(paths.tags)
            blocks = {}
            for name, data in tree["blocks"]:
                node = node_from_dict(data)
                if not isinstance(node, BlockNode):
                    raise ValueError(f"root entry {name!r} is not a block")
                blocks[name] = node
            compiled = CompiledTemplate(
                blocks=blocks,
                index={name: tuple(path) for name, path in index.items()},
                tags=set(tags),
            )
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Corrupt cache artifact %s (%s), recompiling", paths.tree.name, e)
            return None

        logger.debug("Cache hit: %s", paths.tree.name)
        return compiled

    def store(self, paths: ArtifactPaths, compiled: CompiledTemplate) -> None:
        """
        Raises:
            CacheDirectoryUnwritable: If the templates directory cannot be created or written
        """
        if not self.enabled:
            return
        try:
            self.dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheDirectoryUnwritable(self.dir, e) from e
        if not os.access(self.dir, os.W_OK):
            raise CacheDirectoryUnwritable(self.dir)

        try:
            self._atom_write(paths.tree, {
                "v": CACHE_VERSION,
                "blocks": [[name, block.to_dict()] for name, block in compiled.blocks.items()],
            })
            self._atom_write(paths.index, {name: list(path) for name, path in compiled.index.items()})
            self._atom_write(paths.tags, sorted(compiled.tags))
        except OSError as e:
            raise CacheDirectoryUnwritable(self.dir, e) from e
        logger.debug("Cache stored: %s", paths.tree.name)

    # --------------------------- IO helpers --------------------------- #

    @staticmethod
    def _load_json(path: Path) -> Any:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    @staticmethod
    def _atom_write(path: Path, data: Any) -> None:
        tmp = path.with_name(path.name + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
        tmp.replace(path)

    # --------------------------- MAINTENANCE --------------------------- #

    def purge_all(self) -> bool:
        """Remove every stored artifact."""
        try:
            if self.dir.exists():
                shutil.rmtree(self.dir)
            return True
        except OSError as e:
            logger.warning("Failed to clear %s: %s", self.dir, e)
            return False

    def snapshot(self) -> CacheSnapshot:
        size = 0
        entries = 0
        if self.dir.exists():
            for p in self.dir.iterdir():
                if p.is_file() and not p.name.endswith((".idx", ".tags", ".tmp")):
                    entries += 1
                if p.is_file():
                    size += p.stat().st_size
        return CacheSnapshot(
            enabled=bool(self.enabled),
            path=self.dir,
            exists=self.dir.exists(),
            size_bytes=size,
            entries=entries,
        )


__all__ = ["ArtifactCache", "ArtifactPaths", "CacheSnapshot", "artifact_name", "source_hash", "CACHE_VERSION"]

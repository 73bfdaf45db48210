"""
JSON report models printed by the CLI.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict


class TemplateInfo(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    source_hash: str
    blocks: List[str]
    tags: List[str]
    cache_enabled: bool


class CacheInfo(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool
    path: str
    exists: bool
    size_bytes: int
    entries: int
    cleared: bool = False


__all__ = ["TemplateInfo", "CacheInfo"]

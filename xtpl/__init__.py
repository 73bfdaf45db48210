"""
xtpl: block-structured HTML/text template engine.
"""

from __future__ import annotations

from .callbacks import CallbackRegistry
from .config import EngineConfig, load_engine_config
from .errors import (
    CacheDirectoryUnwritable,
    CompileError,
    ConfigError,
    InvalidNodeOperation,
    MissingTemplateFile,
    XtplUserError,
)
from .template import Template
from .version import tool_version

__version__ = tool_version()

__all__ = [
    "Template",
    "EngineConfig",
    "load_engine_config",
    "CallbackRegistry",
    "XtplUserError",
    "CompileError",
    "MissingTemplateFile",
    "CacheDirectoryUnwritable",
    "ConfigError",
    "InvalidNodeOperation",
    "__version__",
]

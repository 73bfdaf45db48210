"""
Base exception for user-facing errors.

All expected errors that should be displayed to the user
as clean messages (without stack traces) must inherit from XtplUserError.

Programming errors and bugs should NOT inherit from XtplUserError;
they will propagate with full tracebacks.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class XtplUserError(Exception):
    """
    Base class for all user-facing errors of the template engine.

    These errors indicate problems that the user can fix:
    broken template markup, missing files, bad configuration, etc.
    """
    pass


class CompileError(XtplUserError):
    """Template markup cannot be compiled (unclosed FOR/IF, bad header...)."""

    def __init__(self, message: str, construct: str = ""):
        self.construct = construct
        text = f"{message}: {construct}" if construct else message
        super().__init__(text)


class MissingTemplateFile(XtplUserError):
    """Raised when a template source file does not exist."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Template file not found: {path}")


class CacheDirectoryUnwritable(XtplUserError):
    """Raised when caching is enabled but the cache directory cannot be written."""

    def __init__(self, directory: Path, cause: Optional[Exception] = None):
        self.directory = directory
        self.cause = cause
        super().__init__(f'Your "{directory}" is not writable')


class ConfigError(XtplUserError):
    """Invalid engine configuration."""
    pass


class InvalidNodeOperation(Exception):
    """
    parse()/reset() requested on a node that cannot accumulate output.

    Only named blocks accumulate rendered text; loops and conditionals
    render directly. Reaching this is a bug in the caller or in the index.
    """
    pass


__all__ = [
    "XtplUserError",
    "CompileError",
    "MissingTemplateFile",
    "CacheDirectoryUnwritable",
    "ConfigError",
    "InvalidNodeOperation",
]

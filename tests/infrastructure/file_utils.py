"""
Utilities for creating template files and directories in tests.
"""

from __future__ import annotations

import textwrap
from pathlib import Path


def write(p: Path, text: str) -> Path:
    """
    Write text to a file, creating parent directories if needed.

    Args:
        p: File path
        text: Content to write

    Returns:
        Path to the created file
    """
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")
    return p


def write_template(p: Path, content: str, *, dedent: bool = True) -> Path:
    """
    Write a template source, dedented so tests can use indented literals.

    Args:
        p: File path
        content: Template markup
        dedent: Apply textwrap.dedent and strip leading newlines

    Returns:
        Path to the created file
    """
    if dedent and content:
        content = textwrap.dedent(content).lstrip("\n")
    return write(p, content)


__all__ = ["write", "write_template"]

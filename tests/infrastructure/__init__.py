"""
Shared test infrastructure for xtpl.

Modules:
- file_utils: creating template files and directories
- rendering_utils: compiling and rendering templates from strings
- cli_utils: running the command line in a subprocess
"""

from .file_utils import write, write_template
from .rendering_utils import make_ctx, render_string
from .cli_utils import run_cli, jload

__all__ = [
    # File utilities
    "write", "write_template",

    # Rendering utilities
    "make_ctx", "render_string",

    # CLI utilities
    "run_cli", "jload",
]

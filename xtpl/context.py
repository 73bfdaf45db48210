from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from .callbacks import CallbackRegistry


@dataclass
class RenderContext:
    """
    Everything a node needs while rendering.

    Attributes:
        vars: Session variable bag (loops write their bindings here)
        registry: Callbacks available to ``{TAG|name}`` chains
        host_globals: Read-only data behind the ``PHP`` tag
    """
    vars: Dict[str, Any]
    registry: CallbackRegistry = field(default_factory=CallbackRegistry)
    host_globals: Mapping[str, Any] = field(default_factory=dict)

"""
Engine configuration.

One immutable EngineConfig is built per process (defaults, an optional YAML
file, environment overrides) and handed to every template session.

YAML layout::

    cache: true
    cache_dir: var/cache
    cleanup: false
    debug: false
    debug_output: false
    include_root: themes/default
    globals:
      cfg: {mainurl: "https://example.org"}
      L: {Home: "Home"}
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigError

logger = logging.getLogger(__name__)

_yaml = YAML(typ="safe")

DEFAULT_CACHE_DIR = Path(".xtpl-cache")

_BOOL_KEYS = ("cache", "cleanup", "debug", "debug_output")
_PATH_KEYS = ("cache_dir", "include_root")
_KNOWN_KEYS = set(_BOOL_KEYS) | set(_PATH_KEYS) | {"globals"}


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine-wide switches shared by all sessions.

    Attributes:
        cache: Store compiled templates on disk and reuse them
        cache_dir: Directory holding the ``templates/`` artifact folder
        cleanup: Collapse HTML whitespace before compiling
        debug: Record variable tables per file and block
        debug_output: Make ``out()`` print the debug report instead of text
        include_root: Base directory for relative ``{FILE}`` paths (cwd if None)
        host_globals: Read-only data exposed to templates under the ``PHP`` tag
    """
    cache: bool = False
    cache_dir: Path = DEFAULT_CACHE_DIR
    cleanup: bool = False
    debug: bool = False
    debug_output: bool = False
    include_root: Optional[Path] = None
    host_globals: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "cache_dir", Path(self.cache_dir))
        if self.include_root is not None:
            object.__setattr__(self, "include_root", Path(self.include_root))
        object.__setattr__(self, "host_globals", MappingProxyType(dict(self.host_globals)))

    @property
    def templates_dir(self) -> Path:
        return self.cache_dir / "templates"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], *, base_dir: Optional[Path] = None) -> EngineConfig:
        """
        Build a config from a plain mapping (e.g. parsed YAML).

        Relative paths are resolved against ``base_dir`` when given.

        Raises:
            ConfigError: On unknown keys or values of the wrong type
        """
        extras = set(raw.keys()) - _KNOWN_KEYS
        if extras:
            raise ConfigError(f"Unknown config key(s): {sorted(extras)}")

        kwargs: Dict[str, Any] = {}
        for key in _BOOL_KEYS:
            if key in raw:
                val = raw[key]
                if not isinstance(val, bool):
                    raise ConfigError(f"{key}: expected bool, got {type(val).__name__}")
                kwargs[key] = val

        for key in _PATH_KEYS:
            if key in raw and raw[key] is not None:
                val = raw[key]
                if not isinstance(val, str):
                    raise ConfigError(f"{key}: expected path string, got {type(val).__name__}")
                p = Path(val)
                if base_dir is not None and not p.is_absolute():
                    p = base_dir / p
                kwargs[key] = p

        if "globals" in raw and raw["globals"] is not None:
            val = raw["globals"]
            if not isinstance(val, dict):
                raise ConfigError(f"globals: expected mapping, got {type(val).__name__}")
            kwargs["host_globals"] = val

        return cls(**kwargs)


def _env_flag(value: str) -> bool:
    return value.strip().lower() not in {"0", "false", "no", "off", ""}


def apply_env_overrides(cfg: EngineConfig, environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """
    Apply XTPL_CACHE / XTPL_CACHE_DIR / XTPL_DEBUG on top of a config.
    """
    env = os.environ if environ is None else environ
    changes: Dict[str, Any] = {}
    if "XTPL_CACHE" in env:
        changes["cache"] = _env_flag(env["XTPL_CACHE"])
    if env.get("XTPL_CACHE_DIR"):
        changes["cache_dir"] = Path(env["XTPL_CACHE_DIR"])
    if "XTPL_DEBUG" in env:
        changes["debug"] = _env_flag(env["XTPL_DEBUG"])
    if not changes:
        return cfg
    logger.debug("Config overridden from environment: %s", sorted(changes))
    return replace(cfg, **changes)


def load_engine_config(path: Optional[Path] = None, *, environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """
    Load the engine configuration.

    Args:
        path: YAML file; None means defaults only
        environ: Environment mapping for overrides (os.environ by default)

    Returns:
        Immutable EngineConfig

    Raises:
        ConfigError: If the file is missing, unparsable or invalid
    """
    if path is None:
        return apply_env_overrides(EngineConfig(), environ)

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    except YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"YAML must be a mapping: {path}")

    cfg = EngineConfig.from_dict(raw, base_dir=path.parent)
    return apply_env_overrides(cfg, environ)


def load_vars_file(path: Path) -> Dict[str, Any]:
    """
    Load template variables from a YAML (or JSON) mapping.

    Raises:
        ConfigError: If the file is missing, unparsable or not a mapping
    """
    if not path.is_file():
        raise ConfigError(f"Variables file not found: {path}")
    try:
        raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    except YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Variables file must contain a mapping: {path}")
    return raw


__all__ = ["EngineConfig", "DEFAULT_CACHE_DIR", "load_engine_config", "apply_env_overrides", "load_vars_file"]

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import EngineConfig, load_engine_config, load_vars_file
from .errors import XtplUserError
from .jsonic import dumps as jdumps
from .report_schema import CacheInfo, TemplateInfo
from .template import ArtifactCache, Template
from .tokenizer import parse_argument
from .variables import VariableReference
from .version import tool_version


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="xtpl",
        description="Block template engine",
        add_help=True,
    )
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {tool_version()}")
    p.add_argument("--log-level", default="WARNING", help="logging level (DEBUG, INFO, WARNING...)")
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_config(sp: argparse.ArgumentParser) -> None:
        sp.add_argument(
            "--config",
            type=Path,
            metavar="FILE",
            help="engine configuration (YAML)",
        )

    sp_render = sub.add_parser("render", help="Render a template block to stdout")
    sp_render.add_argument("template", type=Path, help="template file")
    sp_render.add_argument("--vars", type=Path, metavar="FILE", help="YAML/JSON mapping of variables")
    sp_render.add_argument(
        "--set",
        action="append",
        metavar="NAME=VALUE",
        help="assign one variable (can be repeated; dotted names set nested values)",
    )
    sp_render.add_argument(
        "--parse",
        action="append",
        metavar="BLOCK",
        help="parse a block before output, in the given order (default: the output block)",
    )
    sp_render.add_argument("--block", default="MAIN", help="block to output (default: MAIN)")
    sp_render.add_argument("--no-cache", action="store_true", help="do not use the artifact cache")
    add_config(sp_render)

    sp_inspect = sub.add_parser("inspect", help="Blocks and tags of a template (JSON)")
    sp_inspect.add_argument("template", type=Path, help="template file")
    add_config(sp_inspect)

    sp_cache = sub.add_parser("cache", help="Artifact cache state (JSON)")
    sp_cache.add_argument("--clear", action="store_true", help="remove all cached artifacts first")
    add_config(sp_cache)

    return p


def _parse_assignments(items: Optional[List[str]]) -> Dict[str, Any]:
    """Parse ``NAME=VALUE`` pairs; values follow tag-argument literal rules."""
    result: Dict[str, Any] = {}
    for item in items or []:
        if "=" not in item:
            raise ValueError(f"Invalid assignment '{item}'. Expected NAME=VALUE")
        name, raw = item.split("=", 1)
        name = name.strip()
        if not name:
            raise ValueError(f"Invalid assignment '{item}'. Empty name")
        value = parse_argument(raw)
        result[name] = raw if isinstance(value, VariableReference) else value
    return result


def _config(ns: argparse.Namespace) -> EngineConfig:
    cfg = load_engine_config(getattr(ns, "config", None))
    if getattr(ns, "no_cache", False):
        cfg = replace(cfg, cache=False)
    return cfg


def _render(ns: argparse.Namespace) -> int:
    assignments = _parse_assignments(ns.set)
    tpl = Template(ns.template, _config(ns))
    if ns.vars:
        tpl.assign(load_vars_file(ns.vars))
    tpl.assign(assignments)
    for block in ns.parse or [ns.block]:
        tpl.parse(block)
    tpl.out(ns.block, sys.stdout)
    return 0


def _inspect(ns: argparse.Namespace) -> int:
    cfg = _config(ns)
    tpl = Template(ns.template, cfg)
    info = TemplateInfo(
        path=str(ns.template),
        source_hash=tpl.source_hash,
        blocks=tpl.blocks(),
        tags=tpl.get_tags(),
        cache_enabled=cfg.cache,
    )
    sys.stdout.write(jdumps(info.model_dump(mode="json")))
    return 0


def _cache(ns: argparse.Namespace) -> int:
    cache = ArtifactCache(_config(ns))
    cleared = cache.purge_all() if ns.clear else False
    snap = cache.snapshot()
    info = CacheInfo(
        enabled=snap.enabled,
        path=str(snap.path),
        exists=snap.exists,
        size_bytes=snap.size_bytes,
        entries=snap.entries,
        cleared=cleared,
    )
    sys.stdout.write(jdumps(info.model_dump(mode="json")))
    return 0


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    logging.basicConfig(level=ns.log_level.upper(), format="[%(levelname)s] %(name)s: %(message)s")

    try:
        if ns.cmd == "render":
            return _render(ns)
        if ns.cmd == "inspect":
            return _inspect(ns)
        if ns.cmd == "cache":
            return _cache(ns)
    except XtplUserError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2
    except ValueError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())

from pathlib import Path

import pytest

from xtpl.config import EngineConfig

from tests.infrastructure.file_utils import write, write_template


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # engine overrides from the developer's shell must not leak into tests
    for name in ("XTPL_CACHE", "XTPL_CACHE_DIR", "XTPL_DEBUG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def cache_config(tmp_path: Path) -> EngineConfig:
    """Caching on, artifacts under tmp_path/cache."""
    return EngineConfig(cache=True, cache_dir=tmp_path / "cache")


@pytest.fixture
def tplproj(tmp_path: Path) -> Path:
    """Minimal template project: a page with a nested row block and an include."""
    root = tmp_path
    write_template(root / "themes" / "page.tpl", """
        <!-- BEGIN: MAIN -->
        <h1>{TITLE}</h1>
        <ul>
        <!-- BEGIN: ROW -->
        <li>{ROW.name|htmlspecialchars}</li>
        <!-- END: ROW -->
        </ul>
        {FILE "themes/footer.tpl"}
        <!-- END: MAIN -->
    """)
    write(root / "themes" / "footer.tpl", "<footer>{TITLE|strtoupper}</footer>\n")
    write(root / "xtpl.yaml", "include_root: .\ncache_dir: cache\n")
    return root

from pathlib import Path

import pytest

from xtpl.config import EngineConfig, apply_env_overrides, load_engine_config, load_vars_file
from xtpl.errors import ConfigError

from tests.infrastructure.file_utils import write


class TestEngineConfig:

    def test_defaults(self):
        cfg = load_engine_config(environ={})
        assert cfg == EngineConfig()
        assert cfg.cache is False
        assert cfg.templates_dir == Path(".xtpl-cache") / "templates"

    def test_yaml_file(self, tmp_path: Path):
        path = write(tmp_path / "xtpl.yaml", (
            "cache: true\n"
            "cache_dir: var/cache\n"
            "cleanup: true\n"
            "include_root: themes\n"
            "globals:\n"
            "  cfg: {mainurl: 'https://example.org'}\n"
        ))
        cfg = load_engine_config(path, environ={})
        assert cfg.cache is True
        assert cfg.cleanup is True
        assert cfg.cache_dir == tmp_path / "var" / "cache"
        assert cfg.include_root == tmp_path / "themes"
        assert cfg.host_globals["cfg"]["mainurl"] == "https://example.org"

    def test_host_globals_are_read_only(self):
        cfg = EngineConfig(host_globals={"a": 1})
        with pytest.raises(TypeError):
            cfg.host_globals["a"] = 2

    def test_empty_file_means_defaults(self, tmp_path: Path):
        path = write(tmp_path / "xtpl.yaml", "")
        assert load_engine_config(path, environ={}) == EngineConfig()

    @pytest.mark.parametrize("text,message", [
        ("cache: yes please\n", "cache: expected bool"),
        ("unknown: 1\n", "Unknown config key"),
        ("globals: [1, 2]\n", "globals: expected mapping"),
        ("cache_dir: 5\n", "cache_dir: expected path"),
        ("- a\n- b\n", "must be a mapping"),
        ("cache: [\n", "Failed to parse"),
    ])
    def test_invalid_files(self, tmp_path: Path, text, message):
        path = write(tmp_path / "xtpl.yaml", text)
        with pytest.raises(ConfigError) as exc:
            load_engine_config(path, environ={})
        assert message in str(exc.value)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError):
            load_engine_config(tmp_path / "nope.yaml", environ={})


class TestEnvOverrides:

    def test_overrides(self, tmp_path: Path):
        cfg = apply_env_overrides(EngineConfig(), {
            "XTPL_CACHE": "1",
            "XTPL_CACHE_DIR": str(tmp_path),
            "XTPL_DEBUG": "off",
        })
        assert cfg.cache is True
        assert cfg.cache_dir == tmp_path
        assert cfg.debug is False

    def test_no_overrides_returns_same_object(self):
        cfg = EngineConfig()
        assert apply_env_overrides(cfg, {}) is cfg

    def test_process_environment(self, monkeypatch):
        monkeypatch.setenv("XTPL_CACHE", "true")
        assert load_engine_config().cache is True


class TestVarsFile:

    def test_yaml_and_json(self, tmp_path: Path):
        y = write(tmp_path / "vars.yaml", "TITLE: Hi\nROWS:\n  - {name: a}\n")
        j = write(tmp_path / "vars.json", '{"TITLE": "Hi", "N": 2}')
        assert load_vars_file(y) == {"TITLE": "Hi", "ROWS": [{"name": "a"}]}
        assert load_vars_file(j) == {"TITLE": "Hi", "N": 2}

    def test_not_a_mapping(self, tmp_path: Path):
        path = write(tmp_path / "vars.yaml", "- 1\n")
        with pytest.raises(ConfigError):
            load_vars_file(path)

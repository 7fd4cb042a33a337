from __future__ import annotations

from pathlib import Path

import pytest

from sim_pipeline.core import config
from sim_pipeline.core.errors import ConfigError


def _settings(root: Path, **kw) -> config.Settings:
    return config.Settings(_env_file=None, project_root=root, **kw)


def test_from_settings_resolves_paths_under_root(tmp_path: Path) -> None:
    s = _settings(
        tmp_path,
        project_name="demo",
        wasm_opt_exe=Path("tools/wasm-opt"),
        simulator_exe=tmp_path / "abs" / "sim",
    )
    cfg = config.PipelineConfig.from_settings(s)

    root = tmp_path.resolve()
    assert cfg.project_root == root
    assert cfg.wasm_opt_exe == root / "tools" / "wasm-opt"
    assert cfg.simulator_exe == tmp_path / "abs" / "sim"
    assert cfg.file_log == root / "log.txt"
    assert cfg.run_root == root / "target" / "sim-runs"
    assert cfg.yield_imports == config.DEFAULT_YIELD_IMPORTS


def test_project_name_from_cargo_manifest(tmp_path: Path) -> None:
    (tmp_path / "Cargo.toml").write_text(
        '[package]\nname = "rs-chip-mafia"\nversion = "0.1.0"\n', encoding="utf-8"
    )
    cfg = config.PipelineConfig.from_settings(_settings(tmp_path))
    assert cfg.project_name == "rs_chip_mafia"


def test_missing_manifest_without_name_is_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        config.PipelineConfig.from_settings(_settings(tmp_path))


def test_report_disabled_drops_run_root(tmp_path: Path) -> None:
    s = _settings(tmp_path, project_name="demo", write_report=False)
    assert config.PipelineConfig.from_settings(s).run_root is None


def test_empty_yield_imports_rejected(tmp_path: Path) -> None:
    s = _settings(tmp_path, project_name="demo", yield_imports=[])
    with pytest.raises(ConfigError):
        config.PipelineConfig.from_settings(s)

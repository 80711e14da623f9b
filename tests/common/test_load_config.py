from __future__ import annotations

import logging
from pathlib import Path

import pytest

from common.config import load_config


def test_missing_files_give_empty_dict(tmp_path: Path) -> None:
    assert load_config(tmp_path) == {}


def test_root_config_overrides_top_level_keys(tmp_path: Path) -> None:
    (tmp_path / "configs").mkdir()
    (tmp_path / "configs" / "default.yaml").write_text("engine: {bpm: 100}\nlayer: {n: 5}\n", encoding="utf-8")
    (tmp_path / "config.yaml").write_text("engine: {bpm: 140}\n", encoding="utf-8")
    cfg = load_config(tmp_path)
    assert cfg == {"engine": {"bpm": 140}, "layer": {"n": 5}}


def test_malformed_yaml_is_fail_soft(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    (tmp_path / "config.yaml").write_text("engine: [unclosed\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="common.config"):
        assert load_config(tmp_path) == {}
    assert any("failed to read config" in r.getMessage() for r in caplog.records)


def test_non_mapping_yaml_is_ignored(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text("- just\n- a list\n", encoding="utf-8")
    assert load_config(tmp_path) == {}


@pytest.mark.integration
def test_repository_defaults_contain_engine_and_layer() -> None:
    cfg = load_config()
    assert "engine" in cfg
    assert cfg["layer"]["n"] >= 3

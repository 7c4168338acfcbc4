# tests/focusfive_test/test_config.py
# Pytest for path resolution: platform defaults, FOCUSFIVE_* overrides, log level, directory creation

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from focusfive import config as cfgmod
from focusfive.config import Config, default_data_root, default_goals_dir, load_config


def test_linux_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(cfgmod, "_home", lambda: tmp_path)
    cfg = load_config({}, platform="linux")
    assert cfg.data_root == tmp_path / "FocusFive"
    assert cfg.goals_dir == tmp_path / "FocusFive" / "goals"
    assert cfg.log_level == logging.WARNING


def test_macos_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(cfgmod, "_home", lambda: tmp_path)
    assert default_data_root("darwin") == tmp_path / "Library" / "Application Support" / "FocusFive"
    assert default_goals_dir("darwin") == default_data_root("darwin") / "goals"


def test_no_home_falls_back_to_cwd(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cfgmod, "_home", lambda: None)
    assert default_goals_dir("linux") == Path(".") / "FocusFive" / "goals"


def test_goals_dir_override_sets_root_to_parent(tmp_path: Path) -> None:
    cfg = load_config({"FOCUSFIVE_GOALS_DIR": str(tmp_path / "g")})
    assert cfg.goals_dir == tmp_path / "g"
    assert cfg.data_root == tmp_path


def test_both_overrides(tmp_path: Path) -> None:
    cfg = load_config({
        "FOCUSFIVE_GOALS_DIR": str(tmp_path / "md"),
        "FOCUSFIVE_DATA_ROOT": str(tmp_path / "json"),
        "FOCUSFIVE_LOG_LEVEL": "debug",
    })
    assert (cfg.goals_dir, cfg.data_root) == (tmp_path / "md", tmp_path / "json")
    assert cfg.log_level == logging.DEBUG


def test_data_root_only(tmp_path: Path) -> None:
    cfg = load_config({"FOCUSFIVE_DATA_ROOT": str(tmp_path / "root")})
    assert cfg.goals_dir == tmp_path / "root" / "goals"


@pytest.mark.parametrize("raw,level", [("INFO", logging.INFO), ("10", 10), ("bogus", logging.WARNING), ("", logging.WARNING)])
def test_log_level_parsing(raw: str, level: int, tmp_path: Path) -> None:
    cfg = load_config({"FOCUSFIVE_DATA_ROOT": str(tmp_path), "FOCUSFIVE_LOG_LEVEL": raw})
    assert cfg.log_level == level


def test_ensure_dirs_and_as_dict(tmp_path: Path) -> None:
    cfg = Config(goals_dir=tmp_path / "a" / "goals", data_root=tmp_path / "a")
    cfg.ensure_dirs()
    assert (tmp_path / "a" / "goals").is_dir()
    assert (tmp_path / "a" / "meta").is_dir()
    d = cfg.as_dict()
    assert d["log_level"] == "WARNING" and d["data_root"] == str(tmp_path / "a")

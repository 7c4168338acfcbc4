# focusfive/config.py
# Path resolution (goals dir, data root) with platform defaults and FOCUSFIVE_* environment overrides.

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import logging
import os
import sys

APP_NAME = "FocusFive"

# ---------- Helpers ----------
def _to_level(v: Optional[str], default: int) -> int:
    if not v:
        return default
    s = str(v).strip().upper()
    if s.isdigit():
        return int(s)
    level = logging.getLevelName(s)
    return level if isinstance(level, int) else default

def _home() -> Optional[Path]:
    try:
        home = Path.home()
    except (KeyError, RuntimeError, OSError):
        return None
    return home if str(home) not in ("", ".") else None

# ---------- Config Dataclass ----------
@dataclass
class Config:
    goals_dir: Path                    # daily Markdown files
    data_root: Path                    # JSON documents, meta/, reviews/, observations log
    log_level: int = logging.WARNING

    def ensure_dirs(self) -> None:
        for p in (self.goals_dir, self.data_root, self.data_root / "meta"):
            p.mkdir(parents=True, exist_ok=True)

    def as_dict(self) -> dict:
        return {
            "goals_dir": str(self.goals_dir),
            "data_root": str(self.data_root),
            "log_level": logging.getLevelName(self.log_level),
        }

# ---------- Defaults ----------
def default_data_root(platform: Optional[str] = None) -> Path:
    platform = platform or sys.platform
    home = _home()
    if home is None:
        return Path(".") / APP_NAME
    if platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME
    return home / APP_NAME

def default_goals_dir(platform: Optional[str] = None) -> Path:
    return default_data_root(platform) / "goals"

# ---------- Build config with env overrides ----------
def load_config(env: Optional[Mapping[str, str]] = None, *, platform: Optional[str] = None) -> Config:
    """
    FOCUSFIVE_GOALS_DIR / FOCUSFIVE_DATA_ROOT override the platform defaults.
    Without an explicit data root it is the parent of the goals dir.
    """
    env = os.environ if env is None else env
    goals_env = env.get("FOCUSFIVE_GOALS_DIR")
    root_env = env.get("FOCUSFIVE_DATA_ROOT")

    if goals_env:
        goals_dir = Path(goals_env).expanduser()
        data_root = Path(root_env).expanduser() if root_env else goals_dir.parent
    elif root_env:
        data_root = Path(root_env).expanduser()
        goals_dir = data_root / "goals"
    else:
        data_root = default_data_root(platform)
        goals_dir = data_root / "goals"

    return Config(
        goals_dir=goals_dir,
        data_root=data_root,
        log_level=_to_level(env.get("FOCUSFIVE_LOG_LEVEL"), logging.WARNING),
    )


__all__ = ["APP_NAME", "Config", "default_data_root", "default_goals_dir", "load_config"]

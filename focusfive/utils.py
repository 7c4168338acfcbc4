# focusfive/utils.py
# Common helpers: time/ISO conversions, ids, codepoint clamping, directory creation

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)

# ---------- time ----------

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def today() -> date:
    return datetime.now().date()

def iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")

def parse_iso(s: Optional[str]) -> Optional[datetime]:
    if not s:
        return None
    ss = str(s).strip()
    if ss.endswith("Z"):
        ss = ss[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(ss)
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)

def iso_date(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d is not None else None

def parse_date(s: Optional[str]) -> Optional[date]:
    if not s:
        return None
    try:
        return date.fromisoformat(str(s).strip()[:10])
    except ValueError:
        return None

def iso_week_id(d: date) -> str:
    """2025-01-15 -> '2025-W03' (ISO week numbering)."""
    year, week, _ = d.isocalendar()
    return f"{year}-W{week:02d}"

# ---------- ids ----------

def new_id() -> str:
    return uuid.uuid4().hex

# ---------- strings ----------

def clamp_text(text: Optional[str], limit: int, *, what: str = "text") -> Tuple[str, str]:
    """
    Clamp to `limit` codepoints. Returns (value, warning); warning is "" when
    nothing was cut. Every clamp is also logged.
    """
    s = text or ""
    if len(s) <= limit:
        return s, ""
    warning = f"{what} truncated from {len(s)} to {limit} characters"
    logger.warning(warning)
    return s[:limit], warning

# ---------- paths ----------

def ensure_dir(p: Union[str, Path]) -> Path:
    path = Path(p)
    path.mkdir(parents=True, exist_ok=True)
    return path


__all__ = [
    "utcnow",
    "today",
    "iso",
    "parse_iso",
    "iso_date",
    "parse_date",
    "iso_week_id",
    "new_id",
    "clamp_text",
    "ensure_dir",
]

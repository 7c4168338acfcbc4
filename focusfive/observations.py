# focusfive/observations.py
# Append-only NDJSON log of indicator observations (durable append, strict streaming read, filters, tail)

from __future__ import annotations

import json
import logging
import os
from collections import deque
from datetime import date
from pathlib import Path
from typing import Deque, Iterator, List, Optional, Union

from .atomic import validate_path
from .errors import EncodingFailure, IoFailure, ParseFailure
from .model import Observation
from .schema import validate_document
from .store import observation_from_dict, observation_to_dict
from . import metrics

logger = logging.getLogger(__name__)

OBSERVATIONS_FILE = "observations.ndjson"


# -----------------------------------------------------------------------------
# Append
# -----------------------------------------------------------------------------

def append_observation(path: Union[str, Path], obs: Observation) -> Path:
    """
    Append one compact JSON line and fsync before returning.
    History is never rewritten.
    """
    p = validate_path(path)
    line = json.dumps(observation_to_dict(obs), ensure_ascii=False, separators=(",", ":")) + "\n"
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        with p.open("a", encoding="utf-8") as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        raise IoFailure(f"append failed: {e.strerror or e}", path=p).with_context("append observation", p) from e
    metrics.record_observation()
    logger.debug("appended observation %s for indicator %s", obs.id, obs.indicator_id)
    return p


# -----------------------------------------------------------------------------
# Read
# -----------------------------------------------------------------------------

def _decode_line(raw: str, lineno: int, path: Path) -> Observation:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseFailure(f"corrupt observation line: {e.msg}: {raw[:200]!r}", path=path, line=lineno) from e
    try:
        validate_document("observation", payload, where=path)
        return observation_from_dict(payload)
    except ParseFailure as e:
        raise ParseFailure(f"{e.message}: {raw[:200]!r}", path=path, line=lineno) from e
    except (KeyError, TypeError, ValueError) as e:
        raise ParseFailure(f"malformed observation ({e}): {raw[:200]!r}", path=path, line=lineno) from e


def iter_observations(
    path: Union[str, Path],
    *,
    indicator_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Iterator[Observation]:
    """
    Stream observations in file order. Blank lines are skipped; the first corrupt
    line raises ParseFailure carrying its line number and content.
    `start`/`end` bound `when` inclusively.
    """
    p = Path(path)
    if not p.exists():
        return
    try:
        with p.open("r", encoding="utf-8", errors="strict") as f:
            for lineno, line in enumerate(f, start=1):
                s = line.strip()
                if not s:
                    continue
                obs = _decode_line(s, lineno, p)
                if indicator_id is not None and obs.indicator_id != indicator_id:
                    continue
                if start is not None and obs.when < start:
                    continue
                if end is not None and obs.when > end:
                    continue
                yield obs
    except UnicodeDecodeError as e:
        raise EncodingFailure(f"invalid UTF-8 in observations log: {e.reason}", path=p) from e
    except OSError as e:
        raise IoFailure(f"read failed: {e.strerror or e}", path=p) from e


def read_observations(
    path: Union[str, Path],
    *,
    indicator_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Observation]:
    return list(iter_observations(path, indicator_id=indicator_id, start=start, end=end))


def tail(path: Union[str, Path], n: int = 20, *, indicator_id: Optional[str] = None) -> List[Observation]:
    """Last `n` observations (optionally for one indicator), oldest first."""
    n = max(0, int(n))
    if n == 0:
        return []
    buf: Deque[Observation] = deque(maxlen=n)
    for obs in iter_observations(path, indicator_id=indicator_id):
        buf.append(obs)
    return list(buf)


__all__ = [
    "OBSERVATIONS_FILE",
    "append_observation",
    "iter_observations",
    "read_observations",
    "tail",
]

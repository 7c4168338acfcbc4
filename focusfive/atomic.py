# focusfive/atomic.py
# Atomic file writer (validate -> temp in same dir -> write+fsync -> rename -> chmod) + strict UTF-8 reads + stale temp sweep

from __future__ import annotations

import contextlib
import logging
import os
import re
import threading
import time
from pathlib import Path
from typing import Optional, Set, Union

from .errors import EncodingFailure, IoFailure, PathRejected
from .locks import PATH_LOCKS
from . import metrics

logger = logging.getLogger(__name__)

MAX_PATH_LENGTH = 255
TEMP_MAX_AGE_S = 3600.0
FILE_MODE = 0o644

# .<name>.tmp.<monotonic_ns>.<pid>[.<thread>]
_TEMP_RE = re.compile(r"^\..+\.tmp\.\d+\.\d+(?:\.\d+)?$")

_swept_dirs: Set[str] = set()
_swept_mu = threading.Lock()


# ---------- validation ----------

def validate_path(path: Union[str, Path]) -> Path:
    """Reject NUL, control characters other than tab, '..' segments and over-long paths."""
    s = os.fspath(path)
    if not s:
        raise PathRejected("empty path")
    if "\x00" in s:
        raise PathRejected("path contains a null byte", path=s.replace("\x00", "\\0"))
    for ch in s:
        if ch != "\t" and (ord(ch) < 0x20 or ord(ch) == 0x7F):
            raise PathRejected(f"path contains control character {ord(ch):#04x}", path=repr(s))
    if len(s) > MAX_PATH_LENGTH:
        raise PathRejected(f"path longer than {MAX_PATH_LENGTH} characters ({len(s)})")
    if ".." in Path(s).parts:
        raise PathRejected("path contains a '..' segment", path=s)
    return Path(s)


def temp_name_for(target: Path) -> str:
    return f".{target.name}.tmp.{time.monotonic_ns()}.{os.getpid()}.{threading.get_ident()}"


def is_temp_name(name: str) -> bool:
    return bool(_TEMP_RE.match(name))


# ---------- write ----------

def atomic_write(path: Union[str, Path], data: bytes, *, sweep: bool = True) -> Path:
    """
    Replace `path` with exactly `data`, or fail leaving any existing file untouched.

    Raises PathRejected for invalid paths and IoFailure for any OS error
    (mkdir, create, write, fsync, rename). Same-process writers to one path
    are serialized through PATH_LOCKS.
    """
    try:
        target = validate_path(path)
    except PathRejected:
        metrics.record_write("rejected")
        raise

    t0 = time.perf_counter()
    with PATH_LOCKS.hold(target):
        parent = target.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            metrics.record_write("error")
            raise IoFailure(f"cannot create directory: {e.strerror or e}", path=parent) from e

        if sweep:
            _sweep_once(parent)

        tmp = parent / temp_name_for(target)
        try:
            with open(tmp, "xb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, target)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            metrics.record_write("error")
            raise IoFailure(f"atomic write failed: {e.strerror or e}", path=target) from e

        _fsync_dir(parent)
        if os.name == "posix":
            try:
                os.chmod(target, FILE_MODE)
            except OSError as e:
                logger.debug("chmod %s failed: %s", target, e)

    metrics.record_write("ok", time.perf_counter() - t0)
    logger.debug("wrote %d bytes to %s", len(data), target)
    return target


def atomic_write_text(path: Union[str, Path], text: str, **kw) -> Path:
    return atomic_write(path, text.encode("utf-8"), **kw)


def _fsync_dir(directory: Path) -> None:
    # best-effort: persists the rename on POSIX filesystems
    if os.name != "posix":
        return
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


# ---------- read ----------

def read_bytes(path: Union[str, Path]) -> bytes:
    p = Path(path)
    try:
        return p.read_bytes()
    except OSError as e:
        raise IoFailure(f"read failed: {e.strerror or e}", path=p) from e


def decode_utf8(data: bytes, *, path: Optional[Union[str, Path]] = None) -> str:
    """Strict UTF-8 decode (a leading BOM is dropped)."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingFailure(f"invalid UTF-8 at byte {e.start}: {e.reason}", path=path) from e
    return text[1:] if text.startswith("\ufeff") else text


def read_text(path: Union[str, Path]) -> str:
    return decode_utf8(read_bytes(path), path=path)


# ---------- temp sweep ----------

def sweep_stale_temps(directory: Union[str, Path], *, max_age_s: float = TEMP_MAX_AGE_S) -> int:
    """Remove writer temp files in `directory` older than `max_age_s`. Returns the count removed."""
    d = Path(directory)
    removed = 0
    now = time.time()
    try:
        entries = list(os.scandir(d))
    except OSError:
        return 0
    for entry in entries:
        if not is_temp_name(entry.name):
            continue
        try:
            if not entry.is_file(follow_symlinks=False):
                continue
            if now - entry.stat(follow_symlinks=False).st_mtime <= max_age_s:
                continue
            os.unlink(entry.path)
            removed += 1
        except OSError as e:
            logger.debug("could not sweep %s: %s", entry.path, e)
    if removed:
        logger.info("removed %d stale temp file(s) from %s", removed, d)
        metrics.record_sweep(removed)
    return removed


def _sweep_once(directory: Path) -> None:
    key = os.path.abspath(directory)
    with _swept_mu:
        if key in _swept_dirs:
            return
        _swept_dirs.add(key)
    sweep_stale_temps(directory)


__all__ = [
    "MAX_PATH_LENGTH",
    "TEMP_MAX_AGE_S",
    "validate_path",
    "temp_name_for",
    "is_temp_name",
    "atomic_write",
    "atomic_write_text",
    "read_bytes",
    "decode_utf8",
    "read_text",
    "sweep_stale_temps",
]

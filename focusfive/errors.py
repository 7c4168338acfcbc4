# focusfive/errors.py
# Typed error kinds raised by the core (I/O, path, encoding, parse, invariant, not-found) + per-store save report

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union


class FocusError(Exception):
    """
    Base class for every error the core raises.

    Each layer may append an operation (and optionally a path) with
    with_context(); str(err) renders the chain outermost-first.
    """

    kind: str = "error"

    def __init__(
        self,
        message: str,
        *,
        path: Optional[Union[str, Path]] = None,
        line: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path: Optional[Path] = Path(path) if path is not None else None
        self.line = line
        self.context: List[str] = []

    def with_context(self, op: str, path: Optional[Union[str, Path]] = None) -> "FocusError":
        self.context.append(f"{op} ({path})" if path is not None else op)
        if self.path is None and path is not None:
            self.path = Path(path)
        return self

    def describe(self) -> str:
        base = self.message
        if self.line is not None:
            base = f"line {self.line}: {base}"
        if self.path is not None:
            base = f"{base} [{self.path}]"
        return base

    def __str__(self) -> str:
        if not self.context:
            return self.describe()
        chain = " <- ".join(reversed(self.context))
        return f"{chain}: {self.describe()}"


class IoFailure(FocusError):
    kind = "io_failure"


class PathRejected(FocusError):
    kind = "path_rejected"


class EncodingFailure(FocusError):
    kind = "encoding_failure"


class ParseFailure(FocusError):
    kind = "parse_failure"


class InvariantViolation(FocusError):
    kind = "invariant_violation"


class NotFound(FocusError):
    kind = "not_found"


@dataclass
class SaveReport:
    """Outcome of one save point: which stores were written and which failed."""
    saved: List[str] = field(default_factory=list)
    failed: Dict[str, FocusError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        parts = []
        if self.saved:
            parts.append("saved: " + ", ".join(self.saved))
        for store, err in self.failed.items():
            parts.append(f"{store} failed: {err}")
        return "; ".join(parts) if parts else "nothing to save"


__all__ = [
    "FocusError",
    "IoFailure",
    "PathRejected",
    "EncodingFailure",
    "ParseFailure",
    "InvariantViolation",
    "NotFound",
    "SaveReport",
]

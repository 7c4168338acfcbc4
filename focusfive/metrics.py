# focusfive/metrics.py
# Prometheus metrics for file writes, document parses, store saves, observations and reconciliation.

from __future__ import annotations

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

# Own registry, kept apart from prometheus_client.REGISTRY
REGISTRY = CollectorRegistry(auto_describe=True)

# --- Atomic writer ---
writes_total = Counter(
    "focusfive_writes_total",
    "Atomic file writes by result",
    ["result"],  # ok|error|rejected
    registry=REGISTRY,
)
write_seconds = Histogram(
    "focusfive_write_seconds",
    "Wall time of one atomic write (write+fsync+rename)",
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
    registry=REGISTRY,
)
temp_files_swept_total = Counter(
    "focusfive_temp_files_swept_total",
    "Stale temp files removed by the writer's sweep",
    registry=REGISTRY,
)

# --- Codecs ---
parse_total = Counter(
    "focusfive_parse_total",
    "Document parses by document type and result",
    ["doc", "result"],  # doc=markdown|vision|templates|...; result=ok|error
    registry=REGISTRY,
)
parse_warnings_total = Counter(
    "focusfive_parse_warnings_total",
    "Non-fatal warnings emitted while parsing (discarded lines, clamps)",
    ["doc"],
    registry=REGISTRY,
)

# --- Façade ---
store_saves_total = Counter(
    "focusfive_store_saves_total",
    "Per-store saves at a save point",
    ["store", "result"],
    registry=REGISTRY,
)
observations_appended_total = Counter(
    "focusfive_observations_appended_total",
    "Observations appended to the NDJSON log",
    registry=REGISTRY,
)
reconcile_total = Counter(
    "focusfive_reconcile_total",
    "Reconciliation passes by trigger",
    ["trigger"],  # load|add|remove|save
    registry=REGISTRY,
)


# --- helpers (never raise) ---

def record_write(result: str, seconds: Optional[float] = None) -> None:
    try:
        writes_total.labels(result=result).inc()
        if seconds is not None:
            write_seconds.observe(max(0.0, float(seconds)))
    except Exception:
        pass

def record_sweep(n: int) -> None:
    try:
        if n > 0:
            temp_files_swept_total.inc(n)
    except Exception:
        pass

def record_parse(doc: str, ok: bool, warnings: int = 0) -> None:
    try:
        parse_total.labels(doc=doc, result="ok" if ok else "error").inc()
        if warnings:
            parse_warnings_total.labels(doc=doc).inc(warnings)
    except Exception:
        pass

def record_save(store: str, ok: bool) -> None:
    try:
        store_saves_total.labels(store=store, result="ok" if ok else "error").inc()
    except Exception:
        pass

def record_observation() -> None:
    try:
        observations_appended_total.inc()
    except Exception:
        pass

def record_reconcile(trigger: str) -> None:
    try:
        reconcile_total.labels(trigger=trigger).inc()
    except Exception:
        pass

def sample(name: str, labels: Optional[dict] = None) -> float:
    """Current value of a sample in this module's registry (0.0 if absent)."""
    v = REGISTRY.get_sample_value(name, labels or {})
    return float(v) if v is not None else 0.0

def render() -> bytes:
    """Prometheus text exposition of the core's metrics."""
    return generate_latest(REGISTRY)


__all__ = [
    "REGISTRY",
    "record_write",
    "record_sweep",
    "record_parse",
    "record_save",
    "record_observation",
    "record_reconcile",
    "sample",
    "render",
]

# tests/focusfive_test/test_observations.py
# Pytest for the NDJSON observations log: append, filtered reads, corrupt lines, tail

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from focusfive import metrics
from focusfive.errors import EncodingFailure, ParseFailure, PathRejected
from focusfive.model import IndicatorDef, IndicatorKind, IndicatorUnit, Observation
from focusfive.observations import (
    append_observation,
    iter_observations,
    read_observations,
    tail,
)


@pytest.fixture()
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "observations.ndjson"


@pytest.fixture()
def runs() -> IndicatorDef:
    return IndicatorDef.new("Runs", IndicatorKind.LEADING, IndicatorUnit.count())


@pytest.fixture()
def pages() -> IndicatorDef:
    return IndicatorDef.new("Pages", IndicatorKind.LAGGING, IndicatorUnit.custom("pages"))


def test_append_writes_one_compact_line_each(log_path: Path, runs: IndicatorDef) -> None:
    before = metrics.sample("focusfive_observations_appended_total")
    append_observation(log_path, Observation.new(runs, 1, when=date(2025, 1, 1)))
    append_observation(log_path, Observation.new(runs, 2, when=date(2025, 1, 2), note="long run"))
    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert ": " not in lines[0]
    assert json.loads(lines[1])["note"] == "long run"
    assert metrics.sample("focusfive_observations_appended_total") == before + 2


def test_read_back_in_file_order(log_path: Path, runs: IndicatorDef) -> None:
    for i in range(3):
        append_observation(log_path, Observation.new(runs, i, when=date(2025, 1, i + 1)))
    got = read_observations(log_path)
    assert [o.value for o in got] == [0.0, 1.0, 2.0]
    assert got[0].unit == IndicatorUnit.count()


def test_missing_log_reads_empty(tmp_path: Path) -> None:
    assert read_observations(tmp_path / "none.ndjson") == []
    assert tail(tmp_path / "none.ndjson", 5) == []


def test_filters_by_indicator_and_date(log_path: Path, runs: IndicatorDef, pages: IndicatorDef) -> None:
    append_observation(log_path, Observation.new(runs, 1, when=date(2025, 1, 1)))
    append_observation(log_path, Observation.new(pages, 30, when=date(2025, 1, 2)))
    append_observation(log_path, Observation.new(runs, 2, when=date(2025, 1, 5)))
    append_observation(log_path, Observation.new(runs, 3, when=date(2025, 1, 9)))

    assert [o.value for o in read_observations(log_path, indicator_id=pages.id)] == [30.0]
    ranged = read_observations(log_path, indicator_id=runs.id, start=date(2025, 1, 2), end=date(2025, 1, 5))
    assert [o.value for o in ranged] == [2.0]


def test_corrupt_line_reports_number_and_content(log_path: Path, runs: IndicatorDef) -> None:
    append_observation(log_path, Observation.new(runs, 1, when=date(2025, 1, 1)))
    with log_path.open("a", encoding="utf-8") as f:
        f.write("{not json\n")
    append_observation(log_path, Observation.new(runs, 2, when=date(2025, 1, 2)))

    it = iter_observations(log_path)
    assert next(it).value == 1.0
    with pytest.raises(ParseFailure) as ei:
        next(it)
    assert ei.value.line == 2
    assert "{not json" in ei.value.message


def test_schema_invalid_line_is_parse_failure(log_path: Path) -> None:
    log_path.parent.mkdir(parents=True)
    log_path.write_text('{"id": "1", "indicator_id": "i", "when": "2025-01-01"}\n', encoding="utf-8")
    with pytest.raises(ParseFailure) as ei:
        read_observations(log_path)
    assert ei.value.line == 1


def test_blank_lines_are_skipped(log_path: Path, runs: IndicatorDef) -> None:
    append_observation(log_path, Observation.new(runs, 1, when=date(2025, 1, 1)))
    with log_path.open("a", encoding="utf-8") as f:
        f.write("\n   \n")
    append_observation(log_path, Observation.new(runs, 2, when=date(2025, 1, 2)))
    assert len(read_observations(log_path)) == 2


def test_invalid_utf8_is_encoding_failure(log_path: Path) -> None:
    log_path.parent.mkdir(parents=True)
    log_path.write_bytes(b'{"id": "\xff"}\n')
    with pytest.raises(EncodingFailure):
        read_observations(log_path)


def test_tail_returns_last_n_oldest_first(log_path: Path, runs: IndicatorDef, pages: IndicatorDef) -> None:
    for i in range(6):
        append_observation(log_path, Observation.new(runs, i, when=date(2025, 2, i + 1)))
        append_observation(log_path, Observation.new(pages, 100 + i, when=date(2025, 2, i + 1)))
    assert [o.value for o in tail(log_path, 3, indicator_id=runs.id)] == [3.0, 4.0, 5.0]
    assert [o.value for o in tail(log_path, 2)] == [5.0, 105.0]
    assert tail(log_path, 0) == []


def test_append_rejects_bad_path(tmp_path: Path, runs: IndicatorDef) -> None:
    with pytest.raises(PathRejected):
        append_observation(str(tmp_path / ".." / "obs.ndjson"), Observation.new(runs, 1))

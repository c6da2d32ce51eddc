"""Tests for diagnostics output writers."""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from splitmerge.diagnostics import (
    DIAGNOSTICS_BASENAME,
    DIAGNOSTICS_VERSION,
    write_csv,
    write_json,
)


def _expected_filename(extension: str) -> str:
    return f"{DIAGNOSTICS_BASENAME}{extension}"


def test_write_json_round_trip(tmp_path: Path) -> None:
    payload = {"acceptance": {"split": {"accepted": 3, "proposed": 10}}, "warnings": []}

    path = write_json(payload, tmp_path)

    assert path.name == _expected_filename(".json")
    with path.open("r", encoding="utf-8") as handle:
        assert json.load(handle) == payload
    assert path.read_text(encoding="utf-8").endswith("\n")


def test_write_csv_round_trip(tmp_path: Path) -> None:
    frame = pd.DataFrame({"obs_0": [1.0, 0.5], "obs_1": [0.5, 1.0]}, index=["obs_0", "obs_1"])

    path = write_csv(frame, tmp_path / "nested")

    assert path.name == _expected_filename(".csv")
    reloaded = pd.read_csv(path, index_col=0)
    pd.testing.assert_frame_equal(reloaded, frame)


def test_write_accepts_explicit_versioned_filename(tmp_path: Path) -> None:
    target = tmp_path / _expected_filename(".json")

    assert write_json({}, target) == target


def test_write_rejects_unversioned_filename(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        write_json({}, tmp_path / "diagnostics.json")


def test_write_rejects_existing_file_without_suffix(tmp_path: Path) -> None:
    target = tmp_path / "existing"
    target.write_text("x")

    with pytest.raises(ValueError):
        write_json({}, target)


def test_version_tag_is_embedded_in_basename() -> None:
    assert DIAGNOSTICS_VERSION in DIAGNOSTICS_BASENAME

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from splitmerge.cli.__main__ import build_parser, main
from splitmerge.diagnostics import DIAGNOSTICS_BASENAME
from splitmerge.fixtures import fixture_path


def test_parser_accepts_version_flag() -> None:
    parser = build_parser()
    args = parser.parse_args(["--version"])
    assert args.version is True


def test_run_help_lists_inputs(capsys: pytest.CaptureFixture[str]) -> None:
    parser = build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["run", "--help"])
    captured = capsys.readouterr()
    assert "--points" in captured.out
    assert "--trace" in captured.out


def test_version_flag_reports_package_version(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit):
        main(["--version"])
    captured = capsys.readouterr()
    assert "bnp-splitmerge" in captured.out.strip()


def test_validate_config_prints_resolved_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"process": {"kind": "nggp"}}))

    main(["validate-config", str(config_path)])

    resolved = json.loads(capsys.readouterr().out)
    assert resolved["process"]["kind"] == "nggp"
    assert resolved["chain"]["iterations"] == 1000


def test_validate_config_reports_schema_errors(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"chain": {"thin": "often"}}))

    with pytest.raises(SystemExit) as excinfo:
        main(["validate-config", str(config_path)])
    assert "chain.thin" in str(excinfo.value)


def test_similarity_anchors_require_distances(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"proposal": {"anchors": "similarity"}}))

    with pytest.raises(SystemExit) as excinfo:
        main(["run", "--config", str(config_path), "--n", "6", "--output", str(tmp_path / "draws.csv")])
    assert "--distances" in str(excinfo.value)


def test_run_requires_a_size(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["run", "--output", str(tmp_path / "draws.csv")])
    assert "--n" in str(excinfo.value)


def test_run_writes_draws_trace_and_diagnostics(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "draws.csv"
    trace = tmp_path / "moves.jsonl"
    diagnostics = tmp_path / "diagnostics"

    main(
        [
            "run",
            "--n",
            "8",
            "--iterations",
            "30",
            "--burn-in",
            "10",
            "--seed",
            "11",
            "--output",
            str(output),
            "--trace",
            str(trace),
            "--diagnostics",
            str(diagnostics),
        ]
    )

    draws = pd.read_csv(output)
    assert len(draws) == 30
    assert list(draws.columns[:2]) == ["iteration", "n_clusters"]
    assert [column for column in draws.columns if column.startswith("obs_")] == [f"obs_{i}" for i in range(8)]

    moves = pd.read_json(trace, lines=True)
    assert len(moves) == 40
    assert set(moves["move"]) <= {"split", "merge"}

    payload = json.loads((diagnostics / f"{DIAGNOSTICS_BASENAME}.json").read_text())
    assert payload["draws"] == 30
    assert payload["config"]["chain"]["seed"] == 11
    assert len(payload["config_digest"]) == 64
    assert (diagnostics / f"{DIAGNOSTICS_BASENAME}.csv").exists()

    assert "Kept 30 draws" in capsys.readouterr().out


def test_run_with_points_fixture_and_initial_allocations(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "process": {"kind": "nggp"},
                "proposal": {"kind": "paired", "anchors": "similarity", "shuffle": True},
                "likelihood": {"kind": "distance", "scale": 1.0},
                "chain": {"iterations": 25, "seed": 2},
            }
        )
    )
    output = tmp_path / "draws.json"

    main(
        [
            "run",
            "--config",
            str(config_path),
            "--points",
            str(fixture_path("two_groups", "points")),
            "--initial",
            str(fixture_path("two_groups", "allocations")),
            "--output",
            str(output),
        ]
    )

    draws = pd.read_json(output, lines=True)
    assert len(draws) == 25
    assert "latent_u" in draws.columns
    assert (draws["latent_u"] > 0).all()

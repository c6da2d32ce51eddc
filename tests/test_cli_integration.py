from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pandas as pd
import pytest

from splitmerge.diagnostics import DIAGNOSTICS_BASENAME
from splitmerge.fixtures import fixture_path


PACKAGE_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PACKAGE_ROOT / "src"


def _run_cli(arguments: list[str], *, command: str = "run") -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    pythonpath = str(SRC_PATH)
    if existing := env.get("PYTHONPATH"):
        pythonpath = os.pathsep.join([pythonpath, existing])
    env["PYTHONPATH"] = pythonpath

    result = subprocess.run(
        [sys.executable, "-m", "splitmerge.cli", command, *arguments],
        cwd=PACKAGE_ROOT,
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise AssertionError(
            "CLI invocation failed",
            result.args,
            result.stdout,
            result.stderr,
        )
    return result


@pytest.mark.integration
def test_cli_two_groups_fixture_separates_groups(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "proposal": {"kind": "restricted-scan", "anchors": "similarity"},
                "likelihood": {"kind": "distance", "scale": 2.0},
                "chain": {"iterations": 200, "burn_in": 200, "gibbs_every": 10, "seed": 5},
            }
        )
    )
    output = tmp_path / "draws.csv"
    diagnostics = tmp_path / "diagnostics"

    result = _run_cli(
        [
            "--config",
            str(config_path),
            "--points",
            str(fixture_path("two_groups", "points")),
            "--output",
            str(output),
            "--diagnostics",
            str(diagnostics),
        ]
    )

    assert "Kept 200 draws" in result.stdout
    draws = pd.read_csv(output)
    assert len(draws) == 200

    co_clustering = pd.read_csv(diagnostics / f"{DIAGNOSTICS_BASENAME}.csv", index_col=0)
    within = co_clustering.loc["obs_0", "obs_1"]
    across = co_clustering.loc["obs_0", "obs_5"]
    assert within > across


@pytest.mark.integration
def test_cli_validate_config_round_trip(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"process": {"kind": "nggp", "sigma": 0.4}}))

    result = _run_cli([str(config_path)], command="validate-config")

    resolved = json.loads(result.stdout)
    assert resolved["process"]["sigma"] == 0.4

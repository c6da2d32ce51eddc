"""Tests for chain diagnostics utilities."""

from __future__ import annotations

import math

import numpy as np
import pandas as pd
import pytest

from splitmerge.diagnostics import (
    acceptance_summary,
    autocorrelation,
    build_chain_diagnostics,
    chain_warnings,
    cluster_count_distribution,
    co_clustering_matrix,
    effective_sample_size,
    summarize_distributions,
)
from splitmerge.samplers import ChainResult


def _result(allocations: list[list[int]], latent: list[float] | None = None) -> ChainResult:
    matrix = np.asarray(allocations, dtype=np.int64)
    return ChainResult(
        allocations=matrix,
        iterations=np.arange(matrix.shape[0]),
        n_clusters=np.asarray([len({label for label in row if label >= 0}) for row in allocations]),
        latent=None if latent is None else np.asarray(latent),
        move_counts={
            "split": {"proposed": 4, "accepted": 1},
            "merge": {"proposed": 6, "accepted": 2},
            "shuffle": {"proposed": 0, "accepted": 0},
        },
    )


def test_summarize_distributions_basic_stats() -> None:
    frame = pd.DataFrame({"n_clusters": [1, 2, 2, 3, None]})

    summary = summarize_distributions(frame, quantiles=(0.5,))

    stats = summary["n_clusters"]
    assert stats["count"] == 4
    assert stats["missing"] == 1
    assert math.isclose(stats["mean"], 2.0)
    assert math.isclose(stats["variance"], 0.5)
    assert math.isclose(stats["quantiles"][0.5], 2.0)


def test_summarize_distributions_validates_inputs() -> None:
    frame = pd.DataFrame({"n_clusters": [1, 2]})

    with pytest.raises(KeyError):
        summarize_distributions(frame, metrics=["latent_u"])
    with pytest.raises(ValueError):
        summarize_distributions(frame, quantiles=(1.5,))


def test_cluster_count_distribution_shares() -> None:
    shares = cluster_count_distribution([1, 2, 2, 3])

    assert shares == {1: 0.25, 2: 0.5, 3: 0.25}


def test_co_clustering_matrix_counts_shared_draws() -> None:
    matrix = co_clustering_matrix(np.array([[0, 0, 1], [0, 1, 1], [0, 0, -1]]))

    assert matrix.loc["obs_0", "obs_1"] == pytest.approx(2 / 3)
    assert matrix.loc["obs_1", "obs_2"] == pytest.approx(1 / 3)
    assert matrix.loc["obs_2", "obs_2"] == pytest.approx(2 / 3)
    assert np.allclose(matrix.to_numpy(), matrix.to_numpy().T)


def test_co_clustering_requires_matrix() -> None:
    with pytest.raises(ValueError):
        co_clustering_matrix(np.array([0, 1, 1]))


def test_autocorrelation_starts_at_one() -> None:
    acf = autocorrelation([1.0, 2.0, 3.0, 2.0, 1.0, 2.0])

    assert math.isclose(acf[0], 1.0)
    assert acf.shape == (6,)


def test_effective_sample_size_of_independent_draws_is_near_n() -> None:
    rng = np.random.default_rng(0)
    draws = rng.normal(size=2000)

    estimate = effective_sample_size(draws)

    assert 1500 < estimate["ess"] < 2600


def test_effective_sample_size_penalises_autocorrelation() -> None:
    rng = np.random.default_rng(1)
    draws = np.empty(2000)
    draws[0] = 0.0
    for t in range(1, draws.size):
        draws[t] = 0.95 * draws[t - 1] + rng.normal()

    estimate = effective_sample_size(draws)

    assert estimate["ess"] < 300
    assert estimate["autocorrelation_time"] > 5


def test_effective_sample_size_of_constant_trace() -> None:
    assert effective_sample_size([2.0] * 10)["ess"] == 10.0
    assert effective_sample_size([1.0])["ess"] == 1.0


def test_acceptance_summary_rates() -> None:
    summary = acceptance_summary({"split": {"proposed": 4, "accepted": 1}, "shuffle": {"proposed": 0, "accepted": 0}})

    assert summary["split"]["rate"] == 0.25
    assert math.isnan(summary["shuffle"]["rate"])


def test_chain_warnings_flag_stuck_chain_and_low_ess() -> None:
    acceptance = acceptance_summary({"split": {"proposed": 5, "accepted": 0}, "merge": {"proposed": 5, "accepted": 0}})

    warnings = chain_warnings(acceptance, {"n_clusters": {"ess": 12.0, "autocorrelation_time": 4.0}}, draws=48)

    assert any("No split or merge" in warning for warning in warnings)
    assert any("n_clusters" in warning for warning in warnings)
    assert chain_warnings(acceptance, {}, draws=0) == [
        "No draws were retained; increase iterations or reduce burn-in"
    ]


def test_build_chain_diagnostics_payload() -> None:
    result = _result([[0, 0, 1], [0, 1, 2], [0, 0, 0], [0, 0, 1]], latent=[1.0, 1.2, 0.9, 1.1])

    payload = build_chain_diagnostics(result, minimum_ess=1.0)

    assert payload["draws"] == 4
    assert payload["clusters"] == {1: 0.25, 2: 0.5, 3: 0.25}
    assert set(payload["traces"]) == {"n_clusters", "latent_u"}
    assert set(payload["effective_sample_size"]) == {"n_clusters", "latent_u"}
    assert payload["acceptance"]["merge"]["accepted"] == 2
    assert payload["warnings"] == []

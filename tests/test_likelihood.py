"""Tests for likelihood adapters."""

from __future__ import annotations

import math

import numpy as np
import pytest

from splitmerge.models import (
    ClusterFunctionLikelihood,
    Likelihood,
    NullLikelihood,
    distance_cohesion_score,
    total_log_likelihood,
)
from splitmerge.partition import UNASSIGNED, Partition


def _line_distances(n: int) -> np.ndarray:
    positions = np.arange(n, dtype=float)
    return np.abs(positions[:, None] - positions[None, :])


def test_null_likelihood_is_flat() -> None:
    likelihood = NullLikelihood()

    assert isinstance(likelihood, Likelihood)
    assert likelihood.cluster_log_likelihood(3) == 0.0
    assert likelihood.point_log_likelihood_cond(0, 7) == 0.0


def test_cluster_function_scores_current_members() -> None:
    partition = Partition.from_allocations([0, 0, 1])
    likelihood = ClusterFunctionLikelihood(partition, lambda members: float(members.sum()))

    assert likelihood.cluster_log_likelihood(0) == 1.0
    assert likelihood.cluster_log_likelihood(1) == 2.0
    assert likelihood.cluster_log_likelihood(2) == 0.0


def test_point_conditional_is_score_difference() -> None:
    partition = Partition.from_allocations([0, 0, 1, UNASSIGNED])
    likelihood = ClusterFunctionLikelihood(partition, lambda members: float(members.size**2))

    # Joining {0, 1} grows the score from 4 to 9.
    assert likelihood.point_log_likelihood_cond(3, 0) == 5.0
    # A not-yet-materialised cluster scores the point alone.
    assert likelihood.point_log_likelihood_cond(3, partition.n_clusters) == 1.0


def test_point_conditional_excludes_point_already_in_cluster() -> None:
    partition = Partition.from_allocations([0, 0, 0])
    likelihood = ClusterFunctionLikelihood(partition, lambda members: float(members.size**2))

    assert likelihood.point_log_likelihood_cond(2, 0) == 5.0


def test_queries_do_not_mutate_partition() -> None:
    partition = Partition.from_allocations([0, 0, 1, 1])
    snapshot = partition.snapshot()
    likelihood = ClusterFunctionLikelihood(partition, distance_cohesion_score(_line_distances(4)))

    for c in range(partition.n_clusters + 1):
        likelihood.cluster_log_likelihood(c)
        for i in range(partition.n):
            likelihood.point_log_likelihood_cond(i, c)

    assert partition.allocations().tolist() == snapshot.assignment.tolist()
    assert partition.snapshot().members == snapshot.members


def test_distance_cohesion_prefers_tight_clusters() -> None:
    score = distance_cohesion_score(_line_distances(6), scale=2.0)

    tight = score(np.array([0, 1, 2]))
    loose = score(np.array([0, 3, 5]))

    assert math.isclose(tight, -2.0 * (1 + 2 + 1) / 3)
    assert tight > loose
    assert score(np.array([4])) == 0.0


def test_distance_cohesion_validates_input() -> None:
    with pytest.raises(ValueError):
        distance_cohesion_score(np.zeros((2, 3)))
    with pytest.raises(ValueError):
        distance_cohesion_score(np.zeros((2, 2)), scale=-1.0)


def test_total_log_likelihood_sums_clusters() -> None:
    partition = Partition.from_allocations([0, 1, 1])
    likelihood = ClusterFunctionLikelihood(partition, lambda members: float(members.size))

    assert total_log_likelihood(likelihood, range(partition.n_clusters)) == 3.0

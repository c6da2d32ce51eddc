"""Likelihood evaluators consumed by the samplers."""

from __future__ import annotations

from typing import Callable, Protocol, Sequence, runtime_checkable

import numpy as np

from splitmerge.partition import Partition

ClusterScore = Callable[[np.ndarray], float]
"""Callable returning the log-likelihood of a group of observation indices."""


@runtime_checkable
class Likelihood(Protocol):
    """Pure queries against the current state of a partition."""

    def cluster_log_likelihood(self, c: int) -> float: ...

    def point_log_likelihood_cond(self, i: int, c: int) -> float: ...


class NullLikelihood:
    """Likelihood that ignores the data, so the chain samples the prior."""

    def cluster_log_likelihood(self, c: int) -> float:
        return 0.0

    def point_log_likelihood_cond(self, i: int, c: int) -> float:
        return 0.0


class ClusterFunctionLikelihood:
    """Adapt a per-cluster score into the engine's likelihood interface.

    The conditional of ``i`` against ``c`` is the change in score when ``i``
    joins the current members of ``c``; ``c`` may be the id of a cluster that
    does not exist yet, which scores ``i`` on its own.
    """

    def __init__(self, partition: Partition, score: ClusterScore) -> None:
        self.partition = partition
        self.score = score

    def _members(self, c: int, *, excluding: int | None = None) -> np.ndarray:
        members = [member for member in self.partition.members_of(c) if member != excluding]
        return np.asarray(members, dtype=np.int64)

    def cluster_log_likelihood(self, c: int) -> float:
        members = self._members(c)
        if members.size == 0:
            return 0.0
        return float(self.score(members))

    def point_log_likelihood_cond(self, i: int, c: int) -> float:
        members = self._members(c, excluding=i)
        with_point = np.append(members, np.int64(i))
        baseline = float(self.score(members)) if members.size else 0.0
        return float(self.score(with_point)) - baseline


def distance_cohesion_score(distances: np.ndarray, *, scale: float = 1.0) -> ClusterScore:
    """Return a cluster score penalising the mean within-cluster distance.

    Each cluster contributes ``-scale * sum(d_kl) / size`` over its unordered
    pairs, so tight groups score higher and singletons score zero.
    """

    matrix = np.asarray(distances, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError("Distance matrix must be square")
    if scale < 0:
        raise ValueError("Cohesion scale must be non-negative")

    def score(members: np.ndarray) -> float:
        size = members.size
        if size < 2:
            return 0.0
        block = matrix[np.ix_(members, members)]
        return -scale * float(np.triu(block, k=1).sum()) / size

    return score


def total_log_likelihood(likelihood: Likelihood, clusters: Sequence[int]) -> float:
    return float(sum(likelihood.cluster_log_likelihood(c) for c in clusters))


__all__ = [
    "ClusterFunctionLikelihood",
    "ClusterScore",
    "Likelihood",
    "NullLikelihood",
    "distance_cohesion_score",
    "total_log_likelihood",
]

"""Anchor selection strategies for split-merge moves."""

from __future__ import annotations

import logging
from typing import Literal, Protocol

import numpy as np

from splitmerge.partition import Partition

logger = logging.getLogger(__name__)

AnchorHint = Literal["split", "merge"]
"""Direction a proposal strategy wants the anchor draw to favour."""

HINT_SPLIT: AnchorHint = "split"
HINT_MERGE: AnchorHint = "merge"


class AnchorSelector(Protocol):
    def select(
        self,
        partition: Partition,
        rng: np.random.Generator,
        *,
        hint: AnchorHint | None = None,
    ) -> tuple[int, int] | None: ...


class UniformAnchors:
    """Draw two distinct assigned observations uniformly at random."""

    def select(
        self,
        partition: Partition,
        rng: np.random.Generator,
        *,
        hint: AnchorHint | None = None,
    ) -> tuple[int, int] | None:
        candidates = partition.assigned()
        if candidates.size < 2:
            return None
        first, second = rng.choice(candidates, size=2, replace=False)
        return int(first), int(second)


class SimilarityAnchors:
    """Bias the second anchor by a fixed pairwise distance kernel.

    The first anchor is uniform. With a split hint the second anchor is drawn
    proportionally to its distance from the first (dissimilar pairs are more
    likely to sit in different true groups); with a merge hint it is drawn
    proportionally to ``1 / (distance + eps)``. Strategies that send no hint
    get ``default_hint``. When the weights carry no mass the draw is uniform.

    The weights depend only on the distance matrix, never on the partition,
    so a split and its reverse merge see the same anchor probabilities.
    """

    def __init__(
        self,
        distances: np.ndarray,
        *,
        eps: float = 1e-8,
        default_hint: AnchorHint = HINT_SPLIT,
    ) -> None:
        matrix = np.asarray(distances, dtype=float)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise ValueError("Distance matrix must be square")
        if not np.isfinite(matrix).all() or (matrix < 0).any():
            raise ValueError("Distances must be finite and non-negative")
        if eps <= 0:
            raise ValueError("eps must be positive")
        if default_hint not in (HINT_SPLIT, HINT_MERGE):
            raise ValueError(f"Unknown anchor hint '{default_hint}'")
        self.distances = matrix
        self.eps = float(eps)
        self.default_hint = default_hint

    def select(
        self,
        partition: Partition,
        rng: np.random.Generator,
        *,
        hint: AnchorHint | None = None,
    ) -> tuple[int, int] | None:
        if partition.n != self.distances.shape[0]:
            raise ValueError(
                f"Distance matrix covers {self.distances.shape[0]} observations, partition has {partition.n}"
            )
        candidates = partition.assigned()
        if candidates.size < 2:
            return None

        first = int(rng.choice(candidates))
        others = candidates[candidates != first]
        if hint is None:
            hint = self.default_hint

        row = self.distances[first, others]
        if hint == HINT_SPLIT:
            weights = row.copy()
        else:
            weights = 1.0 / (row + self.eps)

        total = weights.sum()
        if not np.isfinite(total) or total <= 0:
            logger.warning("Degenerate anchor weights for observation %d; drawing uniformly", first)
            return first, int(rng.choice(others))
        return first, int(rng.choice(others, p=weights / total))


__all__ = [
    "AnchorHint",
    "AnchorSelector",
    "HINT_MERGE",
    "HINT_SPLIT",
    "SimilarityAnchors",
    "UniformAnchors",
]

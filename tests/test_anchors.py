"""Tests for anchor selection strategies."""

from __future__ import annotations

from collections import Counter

import numpy as np
import pytest

from splitmerge.partition import UNASSIGNED, Partition
from splitmerge.samplers.anchors import HINT_MERGE, HINT_SPLIT, SimilarityAnchors, UniformAnchors


def _two_group_distances() -> np.ndarray:
    positions = np.array([0.0, 0.1, 0.2, 10.0, 10.1, 10.2])
    return np.abs(positions[:, None] - positions[None, :])


def test_uniform_anchors_are_distinct_and_assigned() -> None:
    partition = Partition.from_allocations([0, 0, UNASSIGNED, 1])
    rng = np.random.default_rng(1)

    for _ in range(100):
        first, second = UniformAnchors().select(partition, rng)
        assert first != second
        assert UNASSIGNED not in (partition.assignment_of(first), partition.assignment_of(second))


def test_anchor_selection_needs_two_assigned_observations() -> None:
    partition = Partition.from_allocations([0, UNASSIGNED, UNASSIGNED])
    rng = np.random.default_rng(2)

    assert UniformAnchors().select(partition, rng) is None
    assert SimilarityAnchors(np.zeros((3, 3))).select(partition, rng, hint=HINT_SPLIT) is None


def test_split_hint_prefers_distant_partner() -> None:
    partition = Partition.from_allocations([0] * 6)
    selector = SimilarityAnchors(_two_group_distances())
    rng = np.random.default_rng(3)

    pairs = [selector.select(partition, rng, hint=HINT_SPLIT) for _ in range(400)]
    cross = sum((first < 3) != (second < 3) for first, second in pairs)

    assert cross / len(pairs) > 0.9


def test_merge_hint_prefers_close_partner() -> None:
    partition = Partition.from_allocations([0] * 6)
    selector = SimilarityAnchors(_two_group_distances())
    rng = np.random.default_rng(4)

    pairs = [selector.select(partition, rng, hint=HINT_MERGE) for _ in range(400)]
    same_side = sum((first < 3) == (second < 3) for first, second in pairs)

    assert same_side / len(pairs) > 0.9


def test_degenerate_weights_fall_back_to_uniform() -> None:
    partition = Partition.from_allocations([0, 0, 0, 0])
    selector = SimilarityAnchors(np.zeros((4, 4)))
    rng = np.random.default_rng(5)

    partners = Counter(selector.select(partition, rng, hint=HINT_SPLIT)[1] for _ in range(400))

    assert set(partners) == {0, 1, 2, 3}


def test_similarity_anchors_validate_distances() -> None:
    with pytest.raises(ValueError):
        SimilarityAnchors(np.zeros((2, 3)))
    with pytest.raises(ValueError):
        SimilarityAnchors(np.array([[0.0, -1.0], [-1.0, 0.0]]))
    with pytest.raises(ValueError):
        SimilarityAnchors(np.zeros((2, 2)), eps=0.0)


def test_similarity_anchors_reject_mismatched_partition() -> None:
    selector = SimilarityAnchors(np.zeros((3, 3)))

    with pytest.raises(ValueError):
        selector.select(Partition.from_allocations([0, 0]), np.random.default_rng(0))


def test_missing_hint_uses_default_direction() -> None:
    partition = Partition.from_allocations([0] * 6)
    rng = np.random.default_rng(6)

    split_default = SimilarityAnchors(_two_group_distances())
    merge_default = SimilarityAnchors(_two_group_distances(), default_hint=HINT_MERGE)
    split_pairs = [split_default.select(partition, rng) for _ in range(400)]
    merge_pairs = [merge_default.select(partition, rng) for _ in range(400)]

    assert sum((first < 3) != (second < 3) for first, second in split_pairs) / 400 > 0.9
    assert sum((first < 3) == (second < 3) for first, second in merge_pairs) / 400 > 0.9


def test_unknown_default_hint_is_rejected() -> None:
    with pytest.raises(ValueError):
        SimilarityAnchors(np.zeros((2, 2)), default_hint="sideways")

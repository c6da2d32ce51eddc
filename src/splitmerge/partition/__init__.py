"""Partition bookkeeping shared by every sampler."""

from .store import (
    UNASSIGNED,
    InvalidTransitionError,
    Partition,
    PartitionInvariantError,
    PartitionSnapshot,
    same_grouping,
)

__all__ = [
    "InvalidTransitionError",
    "Partition",
    "PartitionInvariantError",
    "PartitionSnapshot",
    "UNASSIGNED",
    "same_grouping",
]

"""Arena-backed partition store with contiguous cluster identifiers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

UNASSIGNED = -1
"""Assignment value used for observations that belong to no cluster."""


class InvalidTransitionError(RuntimeError):
    """Raised when an assignment target lies outside ``{-1} ∪ [0, K]``."""

    def __init__(self, observation: int, target: int, n_clusters: int) -> None:
        detail = (
            f"Cannot assign observation {observation} to cluster {target}; "
            f"valid targets are -1 and 0..{n_clusters}"
        )
        super().__init__(detail)
        self.observation = observation
        self.target = target
        self.n_clusters = n_clusters


class PartitionInvariantError(RuntimeError):
    """Raised when the assignment and membership maps disagree."""


@dataclass(frozen=True, slots=True)
class PartitionSnapshot:
    """Immutable copy of a partition used to roll back rejected moves."""

    assignment: np.ndarray
    members: tuple[tuple[int, ...], ...]

    @property
    def n_clusters(self) -> int:
        return len(self.members)


class Partition:
    """Mutable partition of ``n`` observations into clusters ``0..K-1``.

    Clusters live in an implicit arena indexed by their id. When a cluster
    empties, the last cluster is moved into the freed slot so ids stay
    contiguous; only the members of the moved cluster are relabelled.

    Each observation also records its position inside its cluster's member
    list, which makes removal a constant-time swap with the list tail.
    """

    __slots__ = ("_assignment", "_members", "_position")

    def __init__(self, n: int) -> None:
        if n < 0:
            raise ValueError("Partition size must be non-negative")
        self._assignment = np.full(n, UNASSIGNED, dtype=np.int64)
        self._position = np.full(n, -1, dtype=np.int64)
        self._members: list[list[int]] = []

    @classmethod
    def from_allocations(cls, labels: Iterable[int]) -> "Partition":
        """Build a partition from arbitrary integer labels.

        Negative labels leave the observation unassigned. Remaining labels are
        renumbered to ``0..K-1`` in order of first appearance.
        """

        values = [int(label) for label in labels]
        partition = cls(len(values))
        relabel: dict[int, int] = {}
        for index, label in enumerate(values):
            if label < 0:
                continue
            target = relabel.get(label)
            if target is None:
                target = partition.n_clusters
                relabel[label] = target
            partition.assign(index, target)
        return partition

    @property
    def n(self) -> int:
        return int(self._assignment.shape[0])

    @property
    def n_clusters(self) -> int:
        return len(self._members)

    def assignment_of(self, i: int) -> int:
        return int(self._assignment[i])

    def size_of(self, c: int) -> int:
        if not 0 <= c < len(self._members):
            return 0
        return len(self._members[c])

    def members_of(self, c: int) -> tuple[int, ...]:
        if not 0 <= c < len(self._members):
            return ()
        return tuple(self._members[c])

    def allocations(self) -> np.ndarray:
        """Return a copy of the observation → cluster vector."""

        return self._assignment.copy()

    def cluster_sizes(self) -> np.ndarray:
        return np.fromiter((len(group) for group in self._members), dtype=np.int64, count=len(self._members))

    def assigned(self) -> np.ndarray:
        """Return the indices of observations that currently belong to a cluster."""

        return np.flatnonzero(self._assignment >= 0)

    def assign(self, i: int, c: int) -> None:
        """Move observation ``i`` into cluster ``c``.

        Parameters
        ----------
        i:
            Observation index.
        c:
            ``-1`` to unassign, an existing id in ``[0, K)``, or ``K`` to open a
            new cluster.

        Raises
        ------
        InvalidTransitionError
            If ``c`` is outside ``{-1} ∪ [0, K]`` or ``i`` is out of range.
        """

        n_clusters = len(self._members)
        if not 0 <= i < self._assignment.shape[0] or not -1 <= c <= n_clusters:
            raise InvalidTransitionError(i, c, n_clusters)

        current = int(self._assignment[i])
        if current == c:
            return

        if current != UNASSIGNED:
            self._remove(i, current)
            # Compaction may have moved the requested cluster into the freed slot.
            if c != UNASSIGNED and c >= len(self._members) and c != n_clusters:
                c = current

        if c == UNASSIGNED:
            self._assignment[i] = UNASSIGNED
            self._position[i] = -1
            return

        if c >= len(self._members):
            self._members.append([])
            c = len(self._members) - 1
        group = self._members[c]
        self._position[i] = len(group)
        group.append(i)
        self._assignment[i] = c

    def _remove(self, i: int, c: int) -> None:
        group = self._members[c]
        slot = int(self._position[i])
        tail = group.pop()
        if tail != i:
            group[slot] = tail
            self._position[tail] = slot

        if group:
            return

        last = len(self._members) - 1
        if c != last:
            moved = self._members[last]
            self._members[c] = moved
            for member in moved:
                self._assignment[member] = c
        self._members.pop()

    def snapshot(self) -> PartitionSnapshot:
        return PartitionSnapshot(
            assignment=self._assignment.copy(),
            members=tuple(tuple(group) for group in self._members),
        )

    def restore(self, snapshot: PartitionSnapshot) -> None:
        """Reset the store to ``snapshot``, including cluster ids and member order."""

        if snapshot.assignment.shape[0] != self._assignment.shape[0]:
            raise ValueError("Snapshot was taken from a partition of a different size")
        self._assignment = snapshot.assignment.copy()
        self._members = [list(group) for group in snapshot.members]
        self._position.fill(-1)
        for group in self._members:
            for slot, member in enumerate(group):
                self._position[member] = slot

    def check_invariants(self) -> None:
        """Verify contiguity and the assignment/membership correspondence."""

        seen: set[int] = set()
        for cluster, group in enumerate(self._members):
            if not group:
                raise PartitionInvariantError(f"Cluster {cluster} is empty")
            for slot, member in enumerate(group):
                if member in seen:
                    raise PartitionInvariantError(f"Observation {member} appears in more than one cluster")
                seen.add(member)
                if self._assignment[member] != cluster:
                    raise PartitionInvariantError(
                        f"Observation {member} is listed in cluster {cluster} but assigned to "
                        f"{int(self._assignment[member])}"
                    )
                if self._position[member] != slot:
                    raise PartitionInvariantError(f"Position index for observation {member} is stale")

        assigned = set(int(index) for index in np.flatnonzero(self._assignment != UNASSIGNED))
        if assigned != seen:
            raise PartitionInvariantError("Assigned observations do not match the union of cluster members")
        if self._assignment.size and int(self._assignment.max(initial=UNASSIGNED)) >= len(self._members):
            raise PartitionInvariantError("Assignment refers to a cluster id outside [0, K)")

    def groups(self) -> list[list[int]]:
        """Return member lists sorted within each cluster."""

        return [sorted(group) for group in self._members]

    def __len__(self) -> int:
        return self.n

    def __repr__(self) -> str:
        return f"Partition(n={self.n}, n_clusters={self.n_clusters})"


def same_grouping(left: Sequence[int], right: Sequence[int]) -> bool:
    """Return ``True`` when two labellings induce the same partition."""

    if len(left) != len(right):
        return False
    forward: dict[int, int] = {}
    backward: dict[int, int] = {}
    for a, b in zip(left, right):
        a, b = int(a), int(b)
        if (a < 0) != (b < 0):
            return False
        if a < 0:
            continue
        if forward.setdefault(a, b) != b or backward.setdefault(b, a) != a:
            return False
    return True


__all__ = [
    "InvalidTransitionError",
    "Partition",
    "PartitionInvariantError",
    "PartitionSnapshot",
    "UNASSIGNED",
    "same_grouping",
]

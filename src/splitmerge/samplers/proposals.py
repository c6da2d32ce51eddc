"""Proposal generators that allocate the free observations of a move.

Every generator works on the two clusters ``ci`` and ``cj`` recorded in a
:class:`LaunchState`. Both clusters always keep their anchor, so
unassigning free observations never empties them and their ids stay
stable for the whole proposal.

A generator offers two operations:

``propose``
    Reallocate the free observations and return the log-probability of the
    path that was generated.
``log_probability``
    Return the log-probability that ``propose`` would regenerate the current
    labels, leaving the grouping untouched.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Literal, Protocol, Sequence

import numpy as np

from splitmerge.models.likelihood import Likelihood
from splitmerge.models.numeric import normalise_log_weights, sample_log_categorical
from splitmerge.models.process import Process
from splitmerge.partition import UNASSIGNED, Partition
from splitmerge.samplers.anchors import HINT_MERGE, HINT_SPLIT, AnchorHint

LOG_HALF = math.log(0.5)

PairedMode = Literal["smart-split", "smart-merge"]
MODE_SMART_SPLIT: PairedMode = "smart-split"
MODE_SMART_MERGE: PairedMode = "smart-merge"


@dataclass(frozen=True, slots=True)
class LaunchState:
    """Transient description of one split, merge or shuffle move."""

    anchor_i: int
    anchor_j: int
    ci: int
    cj: int
    members: tuple[int, ...]
    labels: tuple[int, ...]

    @property
    def size(self) -> int:
        return len(self.members)

    def with_clusters(self, ci: int, cj: int) -> "LaunchState":
        return replace(self, ci=ci, cj=cj)


@dataclass(slots=True)
class ProposalContext:
    """Collaborators a generator needs while allocating one launch state."""

    partition: Partition
    process: Process
    likelihood: Likelihood
    launch: LaunchState
    rng: np.random.Generator

    @property
    def targets(self) -> tuple[int, int]:
        return self.launch.ci, self.launch.cj


def two_way_log_probabilities(context: ProposalContext, point: int) -> np.ndarray:
    """Normalised log-probabilities of ``point`` joining ``ci`` or ``cj``.

    ``point`` must be unassigned when this is called so that the prior and
    likelihood terms condition on the remaining members only.
    """

    weights = [
        context.process.prior_existing(cluster, point)
        + context.likelihood.point_log_likelihood_cond(point, cluster)
        for cluster in context.targets
    ]
    return normalise_log_weights(weights)


def _target_index(context: ProposalContext, point: int, label: int) -> int:
    ci, cj = context.targets
    if label == ci:
        return 0
    if label == cj:
        return 1
    raise ValueError(f"Observation {point} is in cluster {label}, expected {ci} or {cj}")


class ProposalGenerator(Protocol):
    def prepare(self, rng: np.random.Generator) -> AnchorHint | None: ...

    def propose(self, context: ProposalContext, *, initialise: bool) -> float: ...

    def log_probability(self, context: ProposalContext) -> float: ...


class RestrictedScan:
    """Restricted Gibbs scan over the two move clusters.

    ``propose`` optionally seeds the free observations uniformly at random and
    then performs ``sweeps`` full scans; only the final scan contributes to
    the returned path log-probability.
    """

    def __init__(self, sweeps: int = 5) -> None:
        if sweeps < 1:
            raise ValueError("Restricted scan needs at least one sweep")
        self.sweeps = int(sweeps)

    def prepare(self, rng: np.random.Generator) -> AnchorHint | None:
        return None

    def propose(self, context: ProposalContext, *, initialise: bool) -> float:
        partition = context.partition
        targets = context.targets
        members = context.launch.members

        if initialise:
            for point in members:
                partition.assign(point, targets[int(context.rng.integers(2))])

        log_q = 0.0
        for sweep in range(self.sweeps):
            final = sweep == self.sweeps - 1
            for point in members:
                partition.assign(point, UNASSIGNED)
                log_probs = two_way_log_probabilities(context, point)
                choice = sample_log_categorical(log_probs, context.rng)
                partition.assign(point, targets[choice])
                if final:
                    log_q += float(log_probs[choice])
        return log_q

    def log_probability(self, context: ProposalContext) -> float:
        partition = context.partition
        log_q = 0.0
        for point in context.launch.members:
            label = partition.assignment_of(point)
            index = _target_index(context, point, label)
            partition.assign(point, UNASSIGNED)
            log_probs = two_way_log_probabilities(context, point)
            partition.assign(point, label)
            log_q += float(log_probs[index])
        return log_q


class SequentialAllocation:
    """Allocate each free observation once, conditioning on those already placed."""

    def __init__(self, shuffle_order: bool = True) -> None:
        self.shuffle_order = shuffle_order

    def prepare(self, rng: np.random.Generator) -> AnchorHint | None:
        return None

    def _order(self, context: ProposalContext) -> Sequence[int]:
        members = context.launch.members
        if not self.shuffle_order:
            return members
        return [members[index] for index in context.rng.permutation(len(members))]

    def propose(self, context: ProposalContext, *, initialise: bool) -> float:
        partition = context.partition
        targets = context.targets
        for point in context.launch.members:
            partition.assign(point, UNASSIGNED)

        log_q = 0.0
        for point in self._order(context):
            log_probs = two_way_log_probabilities(context, point)
            choice = sample_log_categorical(log_probs, context.rng)
            partition.assign(point, targets[choice])
            log_q += float(log_probs[choice])
        return log_q

    def log_probability(self, context: ProposalContext) -> float:
        partition = context.partition
        labels = {point: partition.assignment_of(point) for point in context.launch.members}
        for point, label in labels.items():
            _target_index(context, point, label)
        for point in labels:
            partition.assign(point, UNASSIGNED)

        log_q = 0.0
        for point in self._order(context):
            label = labels[point]
            log_probs = two_way_log_probabilities(context, point)
            partition.assign(point, label)
            log_q += float(log_probs[_target_index(context, point, label)])
        return log_q


class RandomAllocation:
    """Send each free observation to either cluster with probability one half."""

    def prepare(self, rng: np.random.Generator) -> AnchorHint | None:
        return None

    def propose(self, context: ProposalContext, *, initialise: bool) -> float:
        targets = context.targets
        for point in context.launch.members:
            context.partition.assign(point, targets[int(context.rng.integers(2))])
        return context.launch.size * LOG_HALF

    def log_probability(self, context: ProposalContext) -> float:
        return context.launch.size * LOG_HALF


class PairedProposal:
    """Pair a refined generator on one move direction with a cheap one on the other.

    Each step flips a fair coin. In ``smart-split`` mode splits are generated
    by ``smart`` and merges are scored with ``smart``'s probability of the
    original labels; anchors favour dissimilar pairs. In ``smart-merge``
    mode splits are uniform random allocations and merges are scored with the
    same closed-form ``0.5 ** |S|``; anchors favour similar pairs.
    """

    def __init__(self, smart: ProposalGenerator | None = None, dumb: ProposalGenerator | None = None) -> None:
        self.smart = smart if smart is not None else SequentialAllocation()
        self.dumb = dumb if dumb is not None else RandomAllocation()
        self.mode: PairedMode = MODE_SMART_SPLIT

    @property
    def active(self) -> ProposalGenerator:
        return self.smart if self.mode == MODE_SMART_SPLIT else self.dumb

    def prepare(self, rng: np.random.Generator) -> AnchorHint | None:
        if rng.random() < 0.5:
            self.mode = MODE_SMART_SPLIT
            return HINT_SPLIT
        self.mode = MODE_SMART_MERGE
        return HINT_MERGE

    def propose(self, context: ProposalContext, *, initialise: bool) -> float:
        return self.active.propose(context, initialise=initialise)

    def log_probability(self, context: ProposalContext) -> float:
        return self.active.log_probability(context)


__all__ = [
    "LOG_HALF",
    "LaunchState",
    "MODE_SMART_MERGE",
    "MODE_SMART_SPLIT",
    "PairedMode",
    "PairedProposal",
    "ProposalContext",
    "ProposalGenerator",
    "RandomAllocation",
    "RestrictedScan",
    "SequentialAllocation",
    "two_way_log_probabilities",
]

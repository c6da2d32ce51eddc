"""Split-merge Metropolis–Hastings engine for partition samplers."""

from __future__ import annotations

import logging
import math
from typing import Callable

import numpy as np

from splitmerge.explain.trace import MOVE_MERGE, MOVE_SHUFFLE, MOVE_SPLIT, MOVE_TYPES, MoveRecord, MoveType
from splitmerge.models.likelihood import Likelihood, total_log_likelihood
from splitmerge.models.numeric import NEG_INF, log_uniform
from splitmerge.models.process import Process
from splitmerge.partition import Partition, PartitionSnapshot
from splitmerge.samplers.anchors import AnchorSelector, UniformAnchors
from splitmerge.samplers.proposals import LaunchState, ProposalContext, ProposalGenerator, RestrictedScan

logger = logging.getLogger(__name__)

MoveRecorder = Callable[[MoveRecord], None]


class SplitMergeEngine:
    """Propose split, merge and shuffle moves on a partition.

    The engine owns the partition for the lifetime of a chain and mutates it
    in place. Every move snapshots the partition first and restores it when
    the proposal is rejected, so callers only ever observe complete states.

    Parameters
    ----------
    partition:
        Partition to sample.
    process:
        Prior oracle supplying existing/new cluster weights and move ratios.
    likelihood:
        Likelihood evaluated against the partition's current state.
    rng:
        Generator owned by this chain; the engine never touches global state.
    anchors:
        Strategy drawing the two anchor observations. Defaults to uniform.
    proposal:
        Strategy allocating the free observations. Defaults to a restricted
        scan.
    shuffle:
        Run a shuffle move after every split or merge attempt.
    recorder:
        Optional callback receiving a :class:`MoveRecord` for every move.
    """

    def __init__(
        self,
        partition: Partition,
        process: Process,
        likelihood: Likelihood,
        *,
        rng: np.random.Generator,
        anchors: AnchorSelector | None = None,
        proposal: ProposalGenerator | None = None,
        shuffle: bool = False,
        recorder: MoveRecorder | None = None,
    ) -> None:
        self.partition = partition
        self.process = process
        self.likelihood = likelihood
        self.rng = rng
        self.anchors = anchors if anchors is not None else UniformAnchors()
        self.proposal = proposal if proposal is not None else RestrictedScan()
        self.shuffle_enabled = shuffle
        self.recorder = recorder
        self.iteration = 0
        self.last_move: MoveRecord | None = None
        self._proposed = {move: 0 for move in MOVE_TYPES}
        self._accepted = {move: 0 for move in MOVE_TYPES}

    def step(self) -> None:
        """Attempt one split or merge and, when enabled, one shuffle."""

        self.iteration += 1
        hint = self.proposal.prepare(self.rng)
        pair = self.anchors.select(self.partition, self.rng, hint=hint)
        if pair is None:
            logger.debug("Fewer than two assigned observations; skipping split-merge move")
        else:
            self.attempt(*pair)

        if self.shuffle_enabled:
            self.shuffle()

    def attempt(self, anchor_i: int, anchor_j: int) -> MoveRecord | None:
        """Split or merge around fixed anchors.

        Returns ``None`` when the anchors coincide or either one is unassigned.
        """

        if anchor_i == anchor_j:
            logger.debug("Anchors coincide at observation %d; skipping move", anchor_i)
            return None
        ci = self.partition.assignment_of(anchor_i)
        cj = self.partition.assignment_of(anchor_j)
        if ci < 0 or cj < 0:
            logger.debug("Anchor %d or %d is unassigned; skipping move", anchor_i, anchor_j)
            return None
        if ci == cj:
            return self._split(anchor_i, anchor_j, ci)
        return self._merge(anchor_i, anchor_j, ci, cj)

    def shuffle(self) -> MoveRecord | None:
        """Reallocate the members of two random clusters between them."""

        partition = self.partition
        if partition.n_clusters < 2:
            logger.debug("Shuffle needs two clusters, found %d; skipping", partition.n_clusters)
            return None

        ci, cj = (int(c) for c in self.rng.choice(partition.n_clusters, size=2, replace=False))
        anchor_i = int(self.rng.choice(partition.members_of(ci)))
        anchor_j = int(self.rng.choice(partition.members_of(cj)))

        launch = self._launch(anchor_i, anchor_j, ci, cj)
        checkpoint = self._checkpoint(anchor_i, anchor_j)
        size_ci = partition.size_of(ci)
        size_cj = partition.size_of(cj)
        before = self._log_likelihood(ci, cj)

        context = self._context(launch)
        log_q_rev = self.proposal.log_probability(context)
        log_q_fwd = self.proposal.propose(context, initialise=False)

        prior = self.process.prior_ratio_shuffle(size_ci, size_cj, ci, cj)
        after = self._log_likelihood(ci, cj)
        return self._decide(MOVE_SHUFFLE, checkpoint, launch, prior, after - before, log_q_rev - log_q_fwd)

    def _split(self, anchor_i: int, anchor_j: int, ci: int) -> MoveRecord:
        partition = self.partition
        launch = self._launch(anchor_i, anchor_j, ci, ci)
        checkpoint = self._checkpoint(anchor_i, anchor_j)
        before = self.likelihood.cluster_log_likelihood(ci)

        partition.assign(anchor_j, partition.n_clusters)
        cj = partition.assignment_of(anchor_j)
        launch = launch.with_clusters(ci, cj)
        log_q_fwd = self.proposal.propose(self._context(launch), initialise=True)

        prior = self.process.prior_ratio_split(ci, cj)
        after = self._log_likelihood(ci, cj)
        return self._decide(MOVE_SPLIT, checkpoint, launch, prior, after - before, -log_q_fwd)

    def _merge(self, anchor_i: int, anchor_j: int, ci: int, cj: int) -> MoveRecord:
        partition = self.partition
        launch = self._launch(anchor_i, anchor_j, ci, cj)
        checkpoint = self._checkpoint(anchor_i, anchor_j)
        size_ci = partition.size_of(ci)
        size_cj = partition.size_of(cj)
        before = self._log_likelihood(ci, cj)

        log_q_rev = self.proposal.log_probability(self._context(launch))

        movers = [anchor_j] + [point for point, label in zip(launch.members, launch.labels) if label == cj]
        for point in movers:
            partition.assign(point, ci)
        # Emptying cj relabels the last cluster, which may have been ci.
        merged = partition.assignment_of(anchor_i)

        prior = self.process.prior_ratio_merge(size_ci, size_cj)
        after = self.likelihood.cluster_log_likelihood(merged)
        return self._decide(MOVE_MERGE, checkpoint, launch, prior, after - before, log_q_rev)

    def _launch(self, anchor_i: int, anchor_j: int, ci: int, cj: int) -> LaunchState:
        clusters = (ci,) if ci == cj else (ci, cj)
        free: list[tuple[int, int]] = []
        for cluster in clusters:
            for member in self.partition.members_of(cluster):
                if member != anchor_i and member != anchor_j:
                    free.append((member, cluster))
        free.sort()
        return LaunchState(
            anchor_i=anchor_i,
            anchor_j=anchor_j,
            ci=ci,
            cj=cj,
            members=tuple(member for member, _ in free),
            labels=tuple(label for _, label in free),
        )

    def _checkpoint(self, anchor_i: int, anchor_j: int) -> PartitionSnapshot:
        checkpoint = self.partition.snapshot()
        self.process.register_move(anchor_i, anchor_j, checkpoint.assignment)
        return checkpoint

    def _context(self, launch: LaunchState) -> ProposalContext:
        return ProposalContext(
            partition=self.partition,
            process=self.process,
            likelihood=self.likelihood,
            launch=launch,
            rng=self.rng,
        )

    def _log_likelihood(self, ci: int, cj: int) -> float:
        return total_log_likelihood(self.likelihood, (ci, cj))

    def _decide(
        self,
        move: MoveType,
        checkpoint: PartitionSnapshot,
        launch: LaunchState,
        log_prior_ratio: float,
        log_likelihood_ratio: float,
        log_proposal_ratio: float,
    ) -> MoveRecord:
        log_acceptance = log_prior_ratio + log_likelihood_ratio + log_proposal_ratio
        if math.isnan(log_acceptance):
            logger.warning(
                "NaN acceptance ratio for %s move (prior=%r, likelihood=%r, proposal=%r); rejecting",
                move,
                log_prior_ratio,
                log_likelihood_ratio,
                log_proposal_ratio,
            )
            log_acceptance = NEG_INF

        log_u = log_uniform(self.rng)
        accepted = log_acceptance > NEG_INF and log_u <= log_acceptance
        self._proposed[move] += 1
        if accepted:
            self._accepted[move] += 1
        else:
            self.partition.restore(checkpoint)

        record = MoveRecord(
            move=move,
            accepted=accepted,
            anchor_i=launch.anchor_i,
            anchor_j=launch.anchor_j,
            iteration=self.iteration,
            ratios={
                "log_prior": log_prior_ratio,
                "log_likelihood": log_likelihood_ratio,
                "log_proposal": log_proposal_ratio,
                "log_acceptance": log_acceptance,
            },
            state={
                "free": launch.size,
                "n_clusters": self.partition.n_clusters,
            },
        )
        logger.debug(
            "%s move on anchors (%d, %d): log_acceptance=%.4f accepted=%s",
            move,
            launch.anchor_i,
            launch.anchor_j,
            log_acceptance,
            accepted,
        )
        self.last_move = record
        if self.recorder is not None:
            self.recorder(record)
        return record

    def accepted_split_count(self) -> int:
        return self._accepted[MOVE_SPLIT]

    def accepted_merge_count(self) -> int:
        return self._accepted[MOVE_MERGE]

    def accepted_shuffle_count(self) -> int:
        return self._accepted[MOVE_SHUFFLE]

    def move_counts(self) -> dict[str, dict[str, int]]:
        """Return proposed and accepted counts keyed by move type."""

        return {
            move: {"proposed": self._proposed[move], "accepted": self._accepted[move]}
            for move in MOVE_TYPES
        }


__all__ = ["MoveRecorder", "SplitMergeEngine"]

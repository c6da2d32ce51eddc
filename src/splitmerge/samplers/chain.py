"""Chain driver assembling the samplers from configuration and running them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from splitmerge.config import (
    ANCHORS_SIMILARITY,
    LIKELIHOOD_DISTANCE,
    PROCESS_NGGP,
    PROPOSAL_PAIRED,
    PROPOSAL_SEQUENTIAL,
    ConfigurationError,
    SamplerConfig,
)
from splitmerge.explain.trace import MoveRecord
from splitmerge.models.likelihood import ClusterFunctionLikelihood, Likelihood, NullLikelihood, distance_cohesion_score
from splitmerge.models.process import (
    DirichletProcess,
    NormalizedGeneralizedGammaProcess,
    Process,
    RandomWalkLatentSampler,
)
from splitmerge.partition import Partition
from splitmerge.samplers.anchors import AnchorSelector, SimilarityAnchors, UniformAnchors
from splitmerge.samplers.engine import SplitMergeEngine
from splitmerge.samplers.gibbs import GibbsSampler
from splitmerge.samplers.proposals import PairedProposal, ProposalGenerator, RestrictedScan, SequentialAllocation

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChainResult:
    """Draws retained by :func:`run_chain`."""

    allocations: np.ndarray
    iterations: np.ndarray
    n_clusters: np.ndarray
    latent: np.ndarray | None
    move_counts: dict[str, dict[str, int]]
    moves: list[MoveRecord] = field(default_factory=list)

    @property
    def n_draws(self) -> int:
        return int(self.allocations.shape[0])

    def to_frame(self) -> pd.DataFrame:
        """Return one row per retained draw with a column per observation."""

        columns = [f"obs_{index}" for index in range(self.allocations.shape[1])]
        frame = pd.DataFrame(self.allocations, columns=columns)
        frame.insert(0, "n_clusters", self.n_clusters)
        if self.latent is not None:
            frame.insert(1, "latent_u", self.latent)
        frame.insert(0, "iteration", self.iterations)
        return frame

    def moves_frame(self) -> pd.DataFrame:
        return pd.DataFrame([record.to_dict() for record in self.moves])


def build_process(config: SamplerConfig, partition: Partition) -> Process:
    params = config.process
    if params.kind == PROCESS_NGGP:
        latent = RandomWalkLatentSampler(
            value=params.initial_u,
            proposal_sd=params.latent_proposal_sd,
            adapt=params.adapt_latent,
        )
        return NormalizedGeneralizedGammaProcess(partition, params.a, params.sigma, params.tau, latent=latent)
    return DirichletProcess(partition, params.a)


def build_likelihood(config: SamplerConfig, partition: Partition, distances: np.ndarray | None) -> Likelihood:
    if config.likelihood.kind == LIKELIHOOD_DISTANCE:
        if distances is None:
            raise ConfigurationError("The distance likelihood requires a distance matrix")
        return ClusterFunctionLikelihood(partition, distance_cohesion_score(distances, scale=config.likelihood.scale))
    return NullLikelihood()


def build_proposal(config: SamplerConfig) -> ProposalGenerator:
    params = config.proposal
    if params.kind == PROPOSAL_SEQUENTIAL:
        return SequentialAllocation(shuffle_order=params.shuffle_order)
    if params.kind == PROPOSAL_PAIRED:
        return PairedProposal(smart=SequentialAllocation(shuffle_order=params.shuffle_order))
    return RestrictedScan(sweeps=params.sweeps)


def build_anchors(config: SamplerConfig, distances: np.ndarray | None) -> AnchorSelector:
    if config.proposal.anchors == ANCHORS_SIMILARITY:
        if distances is None:
            raise ConfigurationError("Similarity anchors require a distance matrix")
        return SimilarityAnchors(
            distances,
            eps=config.proposal.anchor_eps,
            default_hint=config.proposal.anchor_hint,
        )
    return UniformAnchors()


def build_engine(
    config: SamplerConfig,
    partition: Partition,
    *,
    rng: np.random.Generator,
    distances: np.ndarray | None = None,
    likelihood: Likelihood | None = None,
) -> SplitMergeEngine:
    """Assemble a :class:`SplitMergeEngine` from ``config``.

    ``likelihood`` overrides the configured likelihood, which lets callers
    plug in their own model while keeping the rest of the configuration.
    """

    config.validate()
    if distances is not None and distances.shape[0] != partition.n:
        raise ConfigurationError(
            f"Distance matrix covers {distances.shape[0]} observations, partition has {partition.n}"
        )
    return SplitMergeEngine(
        partition,
        build_process(config, partition),
        likelihood if likelihood is not None else build_likelihood(config, partition, distances),
        rng=rng,
        anchors=build_anchors(config, distances),
        proposal=build_proposal(config),
        shuffle=config.proposal.shuffle,
    )


def run_chain(
    engine: SplitMergeEngine,
    config: SamplerConfig,
    *,
    gibbs: GibbsSampler | None = None,
) -> ChainResult:
    """Run burn-in and sampling iterations, keeping every ``thin``-th draw.

    Each iteration refreshes the process hyperparameters, performs one
    split-merge step and, every ``chain.gibbs_every`` iterations, a full
    Gibbs sweep. A Gibbs sampler sharing the engine's collaborators is
    created when ``gibbs`` is omitted and sweeps are enabled.
    """

    chain = config.chain
    if gibbs is None and chain.gibbs_every > 0:
        gibbs = GibbsSampler(engine.partition, engine.process, engine.likelihood, rng=engine.rng)

    moves: list[MoveRecord] = []
    previous = engine.recorder
    if chain.record_moves:

        def _record(record: MoveRecord) -> None:
            moves.append(record)
            if previous is not None:
                previous(record)

        engine.recorder = _record

    try:
        result = _iterate(engine, config, gibbs)
    finally:
        engine.recorder = previous
    result.moves = moves
    return result


def _iterate(engine: SplitMergeEngine, config: SamplerConfig, gibbs: GibbsSampler | None) -> ChainResult:
    chain = config.chain
    total = chain.burn_in + chain.iterations
    report_every = max(1, total // 10)
    kept_allocations: list[np.ndarray] = []
    kept_iterations: list[int] = []
    kept_clusters: list[int] = []
    kept_latent: list[float] = []
    latent_owner = getattr(engine.process, "latent", None)

    logger.info(
        "Running chain: %d burn-in + %d iterations on %d observations", chain.burn_in, chain.iterations, engine.partition.n
    )
    for iteration in range(total):
        engine.process.update_params(engine.rng)
        engine.step()
        if gibbs is not None and chain.gibbs_every > 0 and (iteration + 1) % chain.gibbs_every == 0:
            gibbs.sweep()

        sample_index = iteration - chain.burn_in
        if sample_index >= 0 and sample_index % chain.thin == 0:
            kept_allocations.append(engine.partition.allocations())
            kept_iterations.append(sample_index)
            kept_clusters.append(engine.partition.n_clusters)
            if latent_owner is not None:
                kept_latent.append(float(latent_owner.value))

        if (iteration + 1) % report_every == 0:
            logger.info(
                "Iteration %d/%d: K=%d, accepted splits=%d merges=%d shuffles=%d",
                iteration + 1,
                total,
                engine.partition.n_clusters,
                engine.accepted_split_count(),
                engine.accepted_merge_count(),
                engine.accepted_shuffle_count(),
            )

    allocations = (
        np.vstack(kept_allocations) if kept_allocations else np.empty((0, engine.partition.n), dtype=np.int64)
    )
    return ChainResult(
        allocations=allocations,
        iterations=np.asarray(kept_iterations, dtype=np.int64),
        n_clusters=np.asarray(kept_clusters, dtype=np.int64),
        latent=np.asarray(kept_latent, dtype=float) if latent_owner is not None else None,
        move_counts=engine.move_counts(),
    )


__all__ = [
    "ChainResult",
    "build_anchors",
    "build_engine",
    "build_likelihood",
    "build_process",
    "build_proposal",
    "run_chain",
]

"""Closed-form priors over partitions consumed by the samplers.

Two families are provided. The Dirichlet process weighs existing clusters by
their size. The normalized generalized gamma process discounts every size by
``sigma`` and shifts the new-cluster weight by a latent scale ``U`` that is
refreshed between sweeps by an injected latent sampler.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import numpy as np

from splitmerge.models.numeric import NEG_INF, log_gamma, log_uniform, safe_log
from splitmerge.partition import Partition

logger = logging.getLogger(__name__)

TARGET_ACCEPTANCE = 0.44
"""Acceptance rate targeted by the adaptive latent-scale random walk."""


@runtime_checkable
class Process(Protocol):
    """Prior oracle queried by the split-merge engine and the Gibbs sweep."""

    def prior_existing(self, c: int, i: int) -> float: ...

    def prior_new(self) -> float: ...

    def prior_ratio_split(self, ci: int, cj: int) -> float: ...

    def prior_ratio_merge(self, size_ci_old: int, size_cj_old: int) -> float: ...

    def prior_ratio_shuffle(self, size_ci_old: int, size_cj_old: int, ci: int, cj: int) -> float: ...

    def register_move(self, anchor_i: int, anchor_j: int, allocations: np.ndarray) -> None:
        """Record the anchors and pre-move allocations before a move is scored.

        The built-in priors only keep the record. Priors with spatial or
        covariate terms read it to score the move against the pre-move state.
        """

    def update_params(self, rng: np.random.Generator) -> None: ...


@dataclass(slots=True)
class RegisteredMove:
    """Anchors and pre-move allocations of the move currently being scored.

    Kept for priors whose ratios depend on more than cluster sizes; the
    Dirichlet and NGGP ratios do not read it.
    """

    anchor_i: int = -1
    anchor_j: int = -1
    allocations: np.ndarray | None = None


class DirichletProcess:
    """Dirichlet process prior with concentration ``a``."""

    def __init__(self, partition: Partition, a: float = 1.0) -> None:
        if not a > 0:
            raise ValueError("Dirichlet process concentration must be positive")
        self.partition = partition
        self.a = float(a)
        self.move = RegisteredMove()

    def prior_existing(self, c: int, i: int) -> float:
        return safe_log(self.partition.size_of(c))

    def prior_new(self) -> float:
        return math.log(self.a)

    def prior_ratio_split(self, ci: int, cj: int) -> float:
        n_ci = self.partition.size_of(ci)
        n_cj = self.partition.size_of(cj)
        return (
            math.log(self.a)
            - log_gamma(n_ci + n_cj)
            + log_gamma(n_ci)
            + log_gamma(n_cj)
        )

    def prior_ratio_merge(self, size_ci_old: int, size_cj_old: int) -> float:
        return (
            -math.log(self.a)
            + log_gamma(size_ci_old + size_cj_old)
            - log_gamma(size_ci_old)
            - log_gamma(size_cj_old)
        )

    def prior_ratio_shuffle(self, size_ci_old: int, size_cj_old: int, ci: int, cj: int) -> float:
        return (
            log_gamma(self.partition.size_of(ci))
            + log_gamma(self.partition.size_of(cj))
            - log_gamma(size_ci_old)
            - log_gamma(size_cj_old)
        )

    def register_move(self, anchor_i: int, anchor_j: int, allocations: np.ndarray) -> None:
        self.move = RegisteredMove(anchor_i, anchor_j, allocations)

    def update_params(self, rng: np.random.Generator) -> None:
        return None


@dataclass(slots=True)
class RandomWalkLatentSampler:
    """Adaptive random-walk Metropolis update for the latent scale ``U``.

    The walk runs on ``V = log U`` and tunes its log step size with a
    Robbins–Monro recursion towards :data:`TARGET_ACCEPTANCE`.
    """

    value: float = 1.0
    proposal_sd: float = 1.0
    adapt: bool = True
    iteration: int = 0
    accepted: int = 0
    _log_sd: float = field(init=False, default=0.0)

    def __post_init__(self) -> None:
        if not self.value > 0:
            raise ValueError("Latent scale must start at a positive value")
        if not self.proposal_sd > 0:
            raise ValueError("Latent proposal standard deviation must be positive")
        self._log_sd = math.log(self.proposal_sd)

    @property
    def acceptance_rate(self) -> float:
        if self.iteration == 0:
            return 0.0
        return self.accepted / self.iteration

    def update(
        self,
        *,
        n: int,
        n_clusters: int,
        a: float,
        sigma: float,
        tau: float,
        rng: np.random.Generator,
    ) -> float:
        self.iteration += 1
        current = math.log(self.value)
        proposed = current + float(rng.normal(0.0, math.exp(self._log_sd)))

        log_ratio = (
            log_density_log_scale(proposed, n=n, n_clusters=n_clusters, a=a, sigma=sigma, tau=tau)
            - log_density_log_scale(current, n=n, n_clusters=n_clusters, a=a, sigma=sigma, tau=tau)
        )
        if math.isnan(log_ratio):
            logger.warning("Latent scale update produced a NaN ratio; keeping U=%.6g", self.value)
            log_ratio = NEG_INF

        if log_uniform(rng) <= log_ratio:
            self.value = math.exp(proposed)
            self.accepted += 1

        if self.adapt:
            acceptance = math.exp(min(0.0, log_ratio))
            gain = 1.0 / (TARGET_ACCEPTANCE * (1.0 - TARGET_ACCEPTANCE))
            self._log_sd += gain * (acceptance - TARGET_ACCEPTANCE) / self.iteration

        return self.value


def log_density_latent(u: float, *, n: int, n_clusters: int, a: float, sigma: float, tau: float) -> float:
    """Unnormalised log full conditional of ``U`` given the partition."""

    if not u > 0:
        return NEG_INF
    return (
        (n - 1) * math.log(u)
        - (n - sigma * n_clusters) * math.log(u + tau)
        - (a / sigma) * ((u + tau) ** sigma - tau**sigma)
    )


def log_density_log_scale(v: float, *, n: int, n_clusters: int, a: float, sigma: float, tau: float) -> float:
    """Log density of ``V = log U`` including the Jacobian of the transform."""

    try:
        u = math.exp(v)
    except OverflowError:
        return NEG_INF
    return log_density_latent(u, n=n, n_clusters=n_clusters, a=a, sigma=sigma, tau=tau) + v


class NormalizedGeneralizedGammaProcess:
    """Normalized generalized gamma process prior.

    Parameters
    ----------
    partition:
        Partition whose cluster sizes drive the prior.
    a:
        Total mass parameter.
    sigma:
        Discount in ``(0, 1)``.
    tau:
        Non-negative tilting parameter.
    latent:
        Sampler owning the latent scale ``U``. Defaults to an adaptive
        :class:`RandomWalkLatentSampler`.
    """

    def __init__(
        self,
        partition: Partition,
        a: float = 1.0,
        sigma: float = 0.25,
        tau: float = 1.0,
        latent: RandomWalkLatentSampler | None = None,
    ) -> None:
        if not a > 0:
            raise ValueError("NGGP total mass must be positive")
        if not 0 < sigma < 1:
            raise ValueError("NGGP discount sigma must lie in (0, 1)")
        if tau < 0:
            raise ValueError("NGGP tau must be non-negative")
        self.partition = partition
        self.a = float(a)
        self.sigma = float(sigma)
        self.tau = float(tau)
        self.latent = latent if latent is not None else RandomWalkLatentSampler()
        self.move = RegisteredMove()

    @property
    def u(self) -> float:
        return self.latent.value

    def _shift(self) -> float:
        return self.sigma * safe_log(self.tau + self.u)

    def _discounted(self, size: int) -> float:
        return log_gamma(size - self.sigma)

    def prior_existing(self, c: int, i: int) -> float:
        return safe_log(self.partition.size_of(c) - self.sigma)

    def prior_new(self) -> float:
        return math.log(self.a) + self._shift()

    def prior_ratio_split(self, ci: int, cj: int) -> float:
        n_ci = self.partition.size_of(ci)
        n_cj = self.partition.size_of(cj)
        return (
            math.log(self.a)
            + self._shift()
            - self._discounted(n_ci + n_cj)
            + self._discounted(n_ci)
            + self._discounted(n_cj)
        )

    def prior_ratio_merge(self, size_ci_old: int, size_cj_old: int) -> float:
        return (
            -math.log(self.a)
            - self._shift()
            + self._discounted(size_ci_old + size_cj_old)
            - self._discounted(size_ci_old)
            - self._discounted(size_cj_old)
        )

    def prior_ratio_shuffle(self, size_ci_old: int, size_cj_old: int, ci: int, cj: int) -> float:
        return (
            self._discounted(self.partition.size_of(ci))
            + self._discounted(self.partition.size_of(cj))
            - self._discounted(size_ci_old)
            - self._discounted(size_cj_old)
        )

    def register_move(self, anchor_i: int, anchor_j: int, allocations: np.ndarray) -> None:
        self.move = RegisteredMove(anchor_i, anchor_j, allocations)

    def update_params(self, rng: np.random.Generator) -> None:
        self.latent.update(
            n=len(self.partition.assigned()),
            n_clusters=self.partition.n_clusters,
            a=self.a,
            sigma=self.sigma,
            tau=self.tau,
            rng=rng,
        )


__all__ = [
    "DirichletProcess",
    "NormalizedGeneralizedGammaProcess",
    "Process",
    "RandomWalkLatentSampler",
    "RegisteredMove",
    "TARGET_ACCEPTANCE",
    "log_density_latent",
    "log_density_log_scale",
]

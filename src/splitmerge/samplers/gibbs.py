"""Single-observation Gibbs sweep (Neal's Algorithm 3)."""

from __future__ import annotations

import numpy as np

from splitmerge.models.likelihood import Likelihood
from splitmerge.models.numeric import normalise_log_weights, sample_log_categorical
from splitmerge.models.process import Process
from splitmerge.partition import UNASSIGNED, Partition


class GibbsSampler:
    """Reassign every observation from its full conditional in turn.

    Split-merge moves change many labels at once but rarely move a single
    observation; interleaving this sweep lets the chain make those local
    corrections.
    """

    def __init__(
        self,
        partition: Partition,
        process: Process,
        likelihood: Likelihood,
        *,
        rng: np.random.Generator,
    ) -> None:
        self.partition = partition
        self.process = process
        self.likelihood = likelihood
        self.rng = rng

    def conditional_log_probabilities(self, i: int) -> np.ndarray:
        """Log-probabilities of ``i`` joining each cluster, with the new cluster last.

        ``i`` must be unassigned.
        """

        n_clusters = self.partition.n_clusters
        weights = np.empty(n_clusters + 1)
        for c in range(n_clusters):
            weights[c] = self.process.prior_existing(c, i) + self.likelihood.point_log_likelihood_cond(i, c)
        weights[n_clusters] = self.process.prior_new() + self.likelihood.point_log_likelihood_cond(i, n_clusters)
        return normalise_log_weights(weights)

    def sweep(self) -> None:
        """Resample every assigned observation; unassigned ones stay out of the model."""

        for i in self.partition.assigned().tolist():
            self.partition.assign(i, UNASSIGNED)
            log_probs = self.conditional_log_probabilities(i)
            self.partition.assign(i, sample_log_categorical(log_probs, self.rng))


__all__ = ["GibbsSampler"]

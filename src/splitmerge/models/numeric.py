"""Numerical helpers shared by priors, likelihood adapters and samplers."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from scipy.special import gammaln, logsumexp

NEG_INF = -math.inf


def log_gamma(value: float, *, sentinel: float = 0.0) -> float:
    """Return ``lgamma(value)`` or ``sentinel`` when ``value`` is not positive."""

    if not value > 0:
        return sentinel
    return float(gammaln(value))


def safe_log(value: float) -> float:
    """Natural logarithm mapping non-positive input to ``-inf``."""

    if not value > 0:
        return NEG_INF
    return math.log(value)


def normalise_log_weights(log_weights: Sequence[float] | np.ndarray) -> np.ndarray:
    """Return log-probabilities proportional to ``exp(log_weights)``.

    A vector with no finite mass (all ``-inf`` or containing ``nan``) resolves
    to the uniform distribution, so callers always receive a proper
    categorical. This uniform fallback is the sentinel for a massless
    categorical: proposal generators apply it identically to forward and
    reverse terms, so those terms stay finite and still cancel.
    """

    weights = np.asarray(log_weights, dtype=float)
    if weights.size == 0:
        raise ValueError("Cannot normalise an empty weight vector")

    if np.isnan(weights).any() or np.isposinf(weights).sum() > 1:
        return np.full(weights.shape, -math.log(weights.size))

    if np.isposinf(weights).any():
        result = np.full(weights.shape, NEG_INF)
        result[np.isposinf(weights)] = 0.0
        return result

    if not np.isfinite(weights).any():
        return np.full(weights.shape, -math.log(weights.size))

    return weights - logsumexp(weights)


def sample_log_categorical(log_probabilities: np.ndarray, rng: np.random.Generator) -> int:
    """Draw an index from normalised log-probabilities."""

    probabilities = np.exp(log_probabilities)
    total = probabilities.sum()
    if not total > 0:
        return int(rng.integers(probabilities.size))
    probabilities = probabilities / total
    return int(rng.choice(probabilities.size, p=probabilities))


def log_uniform(rng: np.random.Generator) -> float:
    """Return ``log(u)`` for ``u ~ Uniform(0, 1)``."""

    return safe_log(float(rng.random()))


__all__ = [
    "NEG_INF",
    "log_gamma",
    "log_uniform",
    "normalise_log_weights",
    "safe_log",
    "sample_log_categorical",
]

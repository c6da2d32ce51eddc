"""Utilities for computing diagnostics over split-merge chain outputs."""

from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional, Sequence, TypedDict

import numpy as np
import pandas as pd

from splitmerge.samplers.chain import ChainResult

from .writers import (
    DIAGNOSTICS_BASENAME,
    DIAGNOSTICS_VERSION,
    write_csv,
    write_json,
)


class DistributionSummary(TypedDict):
    """Summary statistics for a single traced quantity.

    Attributes
    ----------
    count:
        Number of non-null draws used to compute the summary.
    missing:
        Number of missing values that were excluded from the summary.
    mean:
        Arithmetic mean of the trace, or ``NaN`` when ``count == 0``.
    variance:
        Population variance (``ddof=0``), or ``NaN`` when ``count == 0``.
    quantiles:
        Mapping of requested quantile -> value.
    """

    count: int
    missing: int
    mean: float
    variance: float
    quantiles: Dict[float, float]


class EffectiveSampleSize(TypedDict):
    """Geyer initial positive sequence estimate for one trace."""

    ess: float
    autocorrelation_time: float


class MoveAcceptance(TypedDict):
    proposed: int
    accepted: int
    rate: float


class ChainDiagnostics(TypedDict):
    """Payload written alongside a chain's draws."""

    draws: int
    clusters: Dict[int, float]
    traces: Dict[str, DistributionSummary]
    effective_sample_size: Dict[str, EffectiveSampleSize]
    acceptance: Dict[str, MoveAcceptance]
    warnings: List[str]


def summarize_distributions(
    frame: pd.DataFrame,
    *,
    metrics: Optional[Sequence[str]] = None,
    quantiles: Sequence[float] = (0.05, 0.5, 0.95),
) -> Dict[str, DistributionSummary]:
    """Summarize distributions for the requested traces.

    Parameters
    ----------
    frame:
        DataFrame with one row per retained draw.
    metrics:
        Optional subset of columns to summarize. When omitted, all numeric
        columns in *frame* are used.
    quantiles:
        Iterable of quantile probabilities in the inclusive interval ``[0, 1]``.
    """

    if metrics is None:
        metrics = [col for col in frame.columns if pd.api.types.is_numeric_dtype(frame[col])]
    else:
        missing = [col for col in metrics if col not in frame.columns]
        if missing:
            raise KeyError(f"Metrics not found in frame: {missing}")

    quantiles = tuple(sorted(dict.fromkeys(float(q) for q in quantiles)))
    for q in quantiles:
        if not 0.0 <= q <= 1.0:
            raise ValueError(f"Quantile {q} is outside the inclusive [0, 1] range")

    summaries: Dict[str, DistributionSummary] = {}
    for metric in metrics:
        series = frame[metric]
        valid = series.dropna()
        count = int(valid.count())
        missing = int(series.isna().sum())

        if count == 0:
            mean = math.nan
            variance = math.nan
            q_values = {q: math.nan for q in quantiles}
        else:
            mean = float(valid.mean())
            variance = float(valid.var(ddof=0))
            q_values = {q: float(valid.quantile(q, interpolation="linear")) for q in quantiles}

        summaries[metric] = DistributionSummary(
            count=count,
            missing=missing,
            mean=mean,
            variance=variance,
            quantiles=q_values,
        )

    return summaries


def cluster_count_distribution(n_clusters: Sequence[int]) -> Dict[int, float]:
    """Posterior frequency of each number of clusters."""

    counts = pd.Series(np.asarray(n_clusters, dtype=np.int64)).value_counts(normalize=True).sort_index()
    return {int(k): float(share) for k, share in counts.items()}


def co_clustering_matrix(allocations: np.ndarray) -> pd.DataFrame:
    """Share of draws in which each pair of observations is clustered together.

    Unassigned observations (label ``-1``) never count as co-clustered.
    """

    draws = np.asarray(allocations, dtype=np.int64)
    if draws.ndim != 2:
        raise ValueError("Allocations must be a (draws, observations) matrix")
    n_draws, n = draws.shape
    together = np.zeros((n, n), dtype=float)
    for row in draws:
        assigned = row >= 0
        together += (row[:, None] == row[None, :]) & assigned[:, None] & assigned[None, :]
    if n_draws:
        together /= n_draws
    labels = [f"obs_{index}" for index in range(n)]
    return pd.DataFrame(together, index=labels, columns=labels)


def autocorrelation(samples: Sequence[float]) -> np.ndarray:
    """Sample autocorrelation function at every lag, normalised to ``acf[0] = 1``."""

    x = np.asarray(samples, dtype=float)
    if x.size == 0:
        return np.ones(0)
    centred = x - x.mean()
    if math.isclose(float(np.dot(centred, centred)), 0.0):
        return np.ones(1)
    padded = np.fft.rfft(centred, n=2 * x.size)
    acov = np.fft.irfft(padded * np.conjugate(padded))[: x.size]
    return acov / acov[0]


def effective_sample_size(samples: Sequence[float]) -> EffectiveSampleSize:
    """Estimate the effective sample size with Geyer's initial positive sequence.

    Pairs of consecutive autocorrelations are summed until the first
    non-positive pair; ``tau = -1 + 2 * sum(pairs)`` and ``ess = n / tau``.
    A constant trace reports ``ess = n``.
    """

    x = np.asarray(samples, dtype=float)
    n = x.size
    if n < 2:
        return EffectiveSampleSize(ess=float(n), autocorrelation_time=1.0)

    acf = autocorrelation(x)
    if acf.size < 2:
        return EffectiveSampleSize(ess=float(n), autocorrelation_time=1.0)

    pair_total = 0.0
    for k in range(acf.size // 2):
        pair = float(acf[2 * k] + acf[2 * k + 1])
        if pair <= 0:
            break
        pair_total += pair

    tau = max(-1.0 + 2.0 * pair_total, 1.0 / n)
    return EffectiveSampleSize(ess=float(n / tau), autocorrelation_time=tau)


def acceptance_summary(move_counts: Mapping[str, Mapping[str, int]]) -> Dict[str, MoveAcceptance]:
    summary: Dict[str, MoveAcceptance] = {}
    for move, counts in move_counts.items():
        proposed = int(counts.get("proposed", 0))
        accepted = int(counts.get("accepted", 0))
        summary[move] = MoveAcceptance(
            proposed=proposed,
            accepted=accepted,
            rate=accepted / proposed if proposed else math.nan,
        )
    return summary


def chain_warnings(
    acceptance: Mapping[str, MoveAcceptance],
    ess: Mapping[str, EffectiveSampleSize],
    *,
    draws: int,
    minimum_ess: float = 100.0,
) -> List[str]:
    """Heuristic warnings about mixing, in the order they were detected."""

    warnings: List[str] = []
    if draws == 0:
        warnings.append("No draws were retained; increase iterations or reduce burn-in")
        return warnings

    split_merge = [acceptance[move] for move in ("split", "merge") if move in acceptance]
    if split_merge and sum(item["proposed"] for item in split_merge) > 0:
        if sum(item["accepted"] for item in split_merge) == 0:
            warnings.append("No split or merge move was accepted; the chain may not be mixing")

    for name, estimate in ess.items():
        if estimate["ess"] < minimum_ess:
            warnings.append(f"Effective sample size of '{name}' is {estimate['ess']:.1f} (< {minimum_ess:g})")
    return warnings


def build_chain_diagnostics(result: ChainResult, *, minimum_ess: float = 100.0) -> ChainDiagnostics:
    """Collect the diagnostics payload for one chain."""

    frame = result.to_frame()
    traced = ["n_clusters"] + (["latent_u"] if result.latent is not None else [])
    ess = {name: effective_sample_size(frame[name].to_numpy()) for name in traced}
    acceptance = acceptance_summary(result.move_counts)

    return ChainDiagnostics(
        draws=result.n_draws,
        clusters=cluster_count_distribution(result.n_clusters),
        traces=summarize_distributions(frame, metrics=traced),
        effective_sample_size=ess,
        acceptance=acceptance,
        warnings=chain_warnings(acceptance, ess, draws=result.n_draws, minimum_ess=minimum_ess),
    )


__all__ = [
    "DIAGNOSTICS_BASENAME",
    "DIAGNOSTICS_VERSION",
    "ChainDiagnostics",
    "DistributionSummary",
    "EffectiveSampleSize",
    "MoveAcceptance",
    "acceptance_summary",
    "autocorrelation",
    "build_chain_diagnostics",
    "chain_warnings",
    "cluster_count_distribution",
    "co_clustering_matrix",
    "effective_sample_size",
    "summarize_distributions",
    "write_csv",
    "write_json",
]

"""Split-merge MCMC for Bayesian nonparametric clustering."""

from .config import SamplerConfig
from .models import DirichletProcess, NormalizedGeneralizedGammaProcess, NullLikelihood
from .partition import InvalidTransitionError, Partition
from .samplers import GibbsSampler, SplitMergeEngine, build_engine, run_chain

__all__ = [
    "DirichletProcess",
    "GibbsSampler",
    "InvalidTransitionError",
    "NormalizedGeneralizedGammaProcess",
    "NullLikelihood",
    "Partition",
    "SamplerConfig",
    "SplitMergeEngine",
    "build_engine",
    "run_chain",
]

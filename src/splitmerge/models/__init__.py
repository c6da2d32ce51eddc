"""Prior and likelihood models plugged into the samplers."""

from .likelihood import (
    ClusterFunctionLikelihood,
    ClusterScore,
    Likelihood,
    NullLikelihood,
    distance_cohesion_score,
    total_log_likelihood,
)
from .process import (
    DirichletProcess,
    NormalizedGeneralizedGammaProcess,
    Process,
    RandomWalkLatentSampler,
    RegisteredMove,
)

__all__ = [
    "ClusterFunctionLikelihood",
    "ClusterScore",
    "DirichletProcess",
    "Likelihood",
    "NormalizedGeneralizedGammaProcess",
    "NullLikelihood",
    "Process",
    "RandomWalkLatentSampler",
    "RegisteredMove",
    "distance_cohesion_score",
    "total_log_likelihood",
]

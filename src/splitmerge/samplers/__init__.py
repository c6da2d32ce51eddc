"""Split-merge engine, proposal strategies and chain driver."""

from .anchors import AnchorHint, AnchorSelector, SimilarityAnchors, UniformAnchors
from .chain import ChainResult, build_engine, run_chain
from .engine import SplitMergeEngine
from .gibbs import GibbsSampler
from .proposals import (
    LaunchState,
    PairedProposal,
    ProposalContext,
    ProposalGenerator,
    RandomAllocation,
    RestrictedScan,
    SequentialAllocation,
)

__all__ = [
    "AnchorHint",
    "AnchorSelector",
    "ChainResult",
    "GibbsSampler",
    "LaunchState",
    "PairedProposal",
    "ProposalContext",
    "ProposalGenerator",
    "RandomAllocation",
    "RestrictedScan",
    "SequentialAllocation",
    "SimilarityAnchors",
    "SplitMergeEngine",
    "UniformAnchors",
    "build_engine",
    "run_chain",
]

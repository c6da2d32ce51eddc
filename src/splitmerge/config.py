"""Configuration objects for split-merge sampling runs."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Mapping

PROCESS_DP = "dp"
PROCESS_NGGP = "nggp"
PROCESS_KINDS = (PROCESS_DP, PROCESS_NGGP)

PROPOSAL_RESTRICTED_SCAN = "restricted-scan"
PROPOSAL_SEQUENTIAL = "sequential"
PROPOSAL_PAIRED = "paired"
PROPOSAL_KINDS = (PROPOSAL_RESTRICTED_SCAN, PROPOSAL_SEQUENTIAL, PROPOSAL_PAIRED)

ANCHORS_UNIFORM = "uniform"
ANCHORS_SIMILARITY = "similarity"
ANCHOR_KINDS = (ANCHORS_UNIFORM, ANCHORS_SIMILARITY)
ANCHOR_HINTS = ("split", "merge")

LIKELIHOOD_NULL = "null"
LIKELIHOOD_DISTANCE = "distance"
LIKELIHOOD_KINDS = (LIKELIHOOD_NULL, LIKELIHOOD_DISTANCE)


class ConfigurationError(ValueError):
    """Raised when sampler parameters are inconsistent or out of range."""


@dataclass(slots=True)
class ProcessConfig:
    """Prior family and its hyperparameters."""

    kind: str = PROCESS_DP
    a: float = 1.0
    sigma: float = 0.25
    tau: float = 1.0
    initial_u: float = 1.0
    latent_proposal_sd: float = 1.0
    adapt_latent: bool = True

    def validate(self) -> None:
        if self.kind not in PROCESS_KINDS:
            raise ConfigurationError(f"Unknown process '{self.kind}'; expected one of {', '.join(PROCESS_KINDS)}")
        if not self.a > 0:
            raise ConfigurationError("Process parameter 'a' must be positive")
        if self.kind == PROCESS_NGGP:
            if not 0 < self.sigma < 1:
                raise ConfigurationError("NGGP parameter 'sigma' must lie in (0, 1)")
            if self.tau < 0:
                raise ConfigurationError("NGGP parameter 'tau' must be non-negative")
            if not self.initial_u > 0:
                raise ConfigurationError("NGGP 'initial_u' must be positive")
            if not self.latent_proposal_sd > 0:
                raise ConfigurationError("NGGP 'latent_proposal_sd' must be positive")


@dataclass(slots=True)
class ProposalConfig:
    """Anchor selection and free-observation allocation strategies."""

    kind: str = PROPOSAL_RESTRICTED_SCAN
    sweeps: int = 5
    shuffle_order: bool = True
    anchors: str = ANCHORS_UNIFORM
    anchor_eps: float = 1e-8
    anchor_hint: str = "split"
    shuffle: bool = False

    def validate(self) -> None:
        if self.kind not in PROPOSAL_KINDS:
            raise ConfigurationError(f"Unknown proposal '{self.kind}'; expected one of {', '.join(PROPOSAL_KINDS)}")
        if self.anchors not in ANCHOR_KINDS:
            raise ConfigurationError(f"Unknown anchor strategy '{self.anchors}'")
        if self.anchor_hint not in ANCHOR_HINTS:
            raise ConfigurationError(f"Unknown anchor hint '{self.anchor_hint}'; expected split or merge")
        if self.sweeps < 1:
            raise ConfigurationError("Restricted scan needs at least one sweep")
        if not self.anchor_eps > 0:
            raise ConfigurationError("'anchor_eps' must be positive")


@dataclass(slots=True)
class LikelihoodConfig:
    kind: str = LIKELIHOOD_NULL
    scale: float = 1.0

    def validate(self) -> None:
        if self.kind not in LIKELIHOOD_KINDS:
            raise ConfigurationError(f"Unknown likelihood '{self.kind}'")
        if self.scale < 0:
            raise ConfigurationError("Likelihood 'scale' must be non-negative")


@dataclass(slots=True)
class ChainConfig:
    """Length, thinning and interleaving of a single chain."""

    iterations: int = 1000
    burn_in: int = 0
    thin: int = 1
    gibbs_every: int = 25
    seed: int | None = None
    record_moves: bool = False

    def validate(self) -> None:
        if self.iterations < 0 or self.burn_in < 0:
            raise ConfigurationError("'iterations' and 'burn_in' must be non-negative")
        if self.thin < 1:
            raise ConfigurationError("'thin' must be at least 1")
        if self.gibbs_every < 0:
            raise ConfigurationError("'gibbs_every' must be non-negative (0 disables Gibbs sweeps)")


@dataclass(slots=True)
class SamplerConfig:
    process: ProcessConfig = field(default_factory=ProcessConfig)
    proposal: ProposalConfig = field(default_factory=ProposalConfig)
    likelihood: LikelihoodConfig = field(default_factory=LikelihoodConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)

    def validate(self) -> "SamplerConfig":
        self.process.validate()
        self.proposal.validate()
        self.likelihood.validate()
        self.chain.validate()
        return self

    @property
    def needs_distances(self) -> bool:
        return self.proposal.anchors == ANCHORS_SIMILARITY or self.likelihood.kind == LIKELIHOOD_DISTANCE

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "SamplerConfig":
        """Build a validated configuration from a nested mapping.

        Sections and keys that are absent fall back to their defaults; unknown
        keys raise :class:`ConfigurationError`.
        """

        sections = {
            "process": ProcessConfig,
            "proposal": ProposalConfig,
            "likelihood": LikelihoodConfig,
            "chain": ChainConfig,
        }
        unknown = sorted(set(payload) - set(sections))
        if unknown:
            raise ConfigurationError(f"Unknown configuration sections: {', '.join(unknown)}")

        built: dict[str, Any] = {}
        for name, section_type in sections.items():
            values = dict(payload.get(name) or {})
            allowed = {item.name for item in fields(section_type)}
            extra = sorted(set(values) - allowed)
            if extra:
                raise ConfigurationError(f"Unknown keys in '{name}': {', '.join(extra)}")
            built[name] = section_type(**values)
        return cls(**built).validate()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


__all__ = [
    "ANCHORS_SIMILARITY",
    "ANCHORS_UNIFORM",
    "ChainConfig",
    "ConfigurationError",
    "LIKELIHOOD_DISTANCE",
    "LIKELIHOOD_NULL",
    "LikelihoodConfig",
    "PROCESS_DP",
    "PROCESS_NGGP",
    "PROPOSAL_PAIRED",
    "PROPOSAL_RESTRICTED_SCAN",
    "PROPOSAL_SEQUENTIAL",
    "ProcessConfig",
    "ProposalConfig",
    "SamplerConfig",
]

"""Structured move records emitted by the split-merge engine."""

from __future__ import annotations

from dataclasses import dataclass, field
import hashlib
import json
from typing import Any, Literal, Mapping

MoveType = Literal["split", "merge", "shuffle"]

MOVE_SPLIT: MoveType = "split"
MOVE_MERGE: MoveType = "merge"
MOVE_SHUFFLE: MoveType = "shuffle"
MOVE_TYPES: tuple[MoveType, ...] = (MOVE_SPLIT, MOVE_MERGE, MOVE_SHUFFLE)


def _normalise_for_hash(value: Any) -> Any:
    """Return a JSON-serialisable representation of ``value``."""

    if isinstance(value, Mapping):
        return {str(key): _normalise_for_hash(sub_value) for key, sub_value in sorted(value.items())}

    if isinstance(value, (list, tuple)):
        return [_normalise_for_hash(item) for item in value]

    if isinstance(value, set):
        return sorted(_normalise_for_hash(item) for item in value)

    if hasattr(value, "tolist") and callable(getattr(value, "tolist")):
        return _normalise_for_hash(value.tolist())

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value

    if hasattr(value, "__dataclass_fields__"):
        return {
            name: _normalise_for_hash(getattr(value, name))
            for name in sorted(value.__dataclass_fields__)
        }

    return repr(value)


def hash_payload(payload: Any) -> str:
    """Return a stable SHA-256 hash for ``payload``.

    Dataclasses, mappings and ``numpy`` arrays are normalised into plain JSON
    before hashing, so two equal configurations always share a digest.
    """

    normalised = _normalise_for_hash(payload)
    encoded = json.dumps(normalised, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


TRACE_SCHEMA_VERSION = "v1"


@dataclass(slots=True)
class MoveRecord:
    """Outcome and acceptance-ratio breakdown of one proposed move."""

    move: MoveType
    accepted: bool
    anchor_i: int
    anchor_j: int
    iteration: int | None = None
    ratios: dict[str, float] = field(default_factory=dict)
    state: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.move = str(self.move)  # type: ignore[assignment]
        self.accepted = bool(self.accepted)
        metadata = dict(self.metadata)
        metadata.setdefault("schema_version", TRACE_SCHEMA_VERSION)
        self.metadata = metadata

    @property
    def log_acceptance(self) -> float:
        return float(self.ratios.get("log_acceptance", float("nan")))

    def to_dict(self) -> dict[str, Any]:
        """Return a flattened dictionary suitable for JSON/CSV output."""

        flattened: dict[str, Any] = {
            "move": self.move,
            "accepted": self.accepted,
            "anchor_i": self.anchor_i,
            "anchor_j": self.anchor_j,
        }
        if self.iteration is not None:
            flattened["iteration"] = self.iteration

        for section_name, section in (
            ("metadata", self.metadata),
            ("ratios", self.ratios),
            ("state", self.state),
        ):
            if not section:
                continue
            for key, value in section.items():
                flattened[f"{section_name}.{key}"] = value

        return flattened


__all__ = [
    "MOVE_MERGE",
    "MOVE_SHUFFLE",
    "MOVE_SPLIT",
    "MOVE_TYPES",
    "MoveRecord",
    "MoveType",
    "TRACE_SCHEMA_VERSION",
    "hash_payload",
]

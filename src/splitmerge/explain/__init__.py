"""Move tracing helpers for split-merge runs."""

from .trace import (
    MOVE_MERGE,
    MOVE_SHUFFLE,
    MOVE_SPLIT,
    MOVE_TYPES,
    TRACE_SCHEMA_VERSION,
    MoveRecord,
    MoveType,
    hash_payload,
)

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

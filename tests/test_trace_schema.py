"""Tests for move records and payload hashing."""

from __future__ import annotations

import numpy as np

from splitmerge.config import SamplerConfig
from splitmerge.explain import MOVE_SPLIT, TRACE_SCHEMA_VERSION, MoveRecord, hash_payload


def test_move_record_flattens_sections() -> None:
    record = MoveRecord(
        move=MOVE_SPLIT,
        accepted=True,
        anchor_i=1,
        anchor_j=4,
        iteration=7,
        ratios={"log_prior": -0.5, "log_acceptance": 0.25},
        state={"free": 3},
    )

    flattened = record.to_dict()

    assert flattened["move"] == "split"
    assert flattened["accepted"] is True
    assert flattened["iteration"] == 7
    assert flattened["ratios.log_prior"] == -0.5
    assert flattened["state.free"] == 3
    assert flattened["metadata.schema_version"] == TRACE_SCHEMA_VERSION
    assert record.log_acceptance == 0.25


def test_move_record_omits_empty_sections_and_iteration() -> None:
    record = MoveRecord(move="merge", accepted=0, anchor_i=0, anchor_j=2)

    flattened = record.to_dict()

    assert flattened["accepted"] is False
    assert "iteration" not in flattened
    assert not any(key.startswith("ratios.") for key in flattened)


def test_hash_payload_is_stable_across_key_order_and_containers() -> None:
    first = hash_payload({"b": [1, 2], "a": np.array([0.5, 1.5])})
    second = hash_payload({"a": [0.5, 1.5], "b": (1, 2)})

    assert first == second
    assert len(first) == 64


def test_hash_payload_accepts_dataclasses() -> None:
    config = SamplerConfig()

    assert hash_payload(config) == hash_payload(SamplerConfig())
    assert hash_payload(config) != hash_payload(SamplerConfig.from_mapping({"process": {"a": 2.0}}))

"""Data loading utilities for split-merge sampling runs."""

from .loaders import (
    DistanceMatrixError,
    MissingColumnsError,
    distances_from_points,
    load_allocations,
    load_distance_matrix,
    load_points,
    validate_distance_matrix,
)
from .schema import ALLOCATIONS_SCHEMA, POINTS_SCHEMA, SCHEMAS, DatasetSchema

__all__ = [
    "DistanceMatrixError",
    "MissingColumnsError",
    "distances_from_points",
    "load_allocations",
    "load_distance_matrix",
    "load_points",
    "validate_distance_matrix",
    "ALLOCATIONS_SCHEMA",
    "POINTS_SCHEMA",
    "DatasetSchema",
    "SCHEMAS",
]

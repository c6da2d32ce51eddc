"""Utilities for loading and validating sampler inputs."""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pandas as pd
from scipy.spatial.distance import cdist

from .schema import ALLOCATIONS_SCHEMA, POINTS_SCHEMA, DatasetSchema

__all__ = [
    "DistanceMatrixError",
    "MissingColumnsError",
    "distances_from_points",
    "load_allocations",
    "load_distance_matrix",
    "load_points",
    "validate_distance_matrix",
]


class MissingColumnsError(ValueError):
    """Raised when a dataset is missing required columns."""

    def __init__(self, schema: DatasetSchema, missing: list[str]):
        message = (
            f"{schema.name.title()} data is missing required columns: {', '.join(missing)}. "
            f"Expected columns include: {', '.join(schema.required_columns)}."
        )
        super().__init__(message)
        self.schema = schema
        self.missing = missing


class DistanceMatrixError(ValueError):
    """Raised when a pairwise distance matrix is malformed."""


def load_distance_matrix(path: str | Path) -> np.ndarray:
    """Load a square distance matrix from CSV or JSON.

    CSV files carry observation identifiers in both the header row and the
    first column, which must agree. JSON files hold a list of rows.
    """

    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        frame = pd.read_csv(path, index_col=0)
        rows = [str(label) for label in frame.index]
        columns = [str(label) for label in frame.columns]
        if rows != columns:
            raise DistanceMatrixError("Distance matrix row and column identifiers differ")
        matrix = frame.to_numpy(dtype=float)
    elif suffix == ".json":
        payload = json.loads(path.read_text(encoding="utf-8"))
        try:
            matrix = np.asarray(payload, dtype=float)
        except (TypeError, ValueError) as exc:
            raise DistanceMatrixError(f"Distance matrix in '{path}' is not numeric") from exc
    else:
        raise ValueError(f"Unsupported file type '{suffix}' for distance data")
    return validate_distance_matrix(matrix)


def validate_distance_matrix(matrix: np.ndarray, *, atol: float = 1e-9) -> np.ndarray:
    """Check that ``matrix`` is square, finite, non-negative and symmetric."""

    matrix = np.asarray(matrix, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise DistanceMatrixError(f"Distance matrix must be square, got shape {matrix.shape}")
    if not np.isfinite(matrix).all():
        raise DistanceMatrixError("Distance matrix contains missing or infinite values")
    if (matrix < 0).any():
        raise DistanceMatrixError("Distance matrix contains negative entries")
    if not np.allclose(matrix, matrix.T, atol=atol):
        raise DistanceMatrixError("Distance matrix is not symmetric")
    return matrix


def load_points(path: str | Path) -> pd.DataFrame:
    """Load planar point coordinates from CSV or JSON and validate required columns."""

    return _load_and_validate(path, POINTS_SCHEMA)


def distances_from_points(points: pd.DataFrame) -> np.ndarray:
    """Euclidean distance matrix between the ``X``/``Y`` coordinates of ``points``."""

    coordinates = points.loc[:, ["X", "Y"]].to_numpy(dtype=float)
    return validate_distance_matrix(cdist(coordinates, coordinates))


def load_allocations(path: str | Path, *, n: int | None = None) -> np.ndarray:
    """Load initial cluster labels keyed by observation index.

    Observations missing from the file are left unassigned (``-1``). When
    ``n`` is omitted the largest observation index determines the length.
    """

    frame = _load_and_validate(path, ALLOCATIONS_SCHEMA)
    if frame["Observation"].isna().any() or frame["Cluster"].isna().any():
        raise ValueError("Allocations must not contain missing values")
    observations = frame["Observation"].to_numpy(dtype=np.int64)
    clusters = frame["Cluster"].to_numpy(dtype=np.int64)
    if (observations < 0).any():
        raise ValueError("Observation indices must be non-negative")
    if len(np.unique(observations)) != len(observations):
        raise ValueError("Each observation may appear only once in the allocations")

    size = n if n is not None else (int(observations.max()) + 1 if observations.size else 0)
    if observations.size and int(observations.max()) >= size:
        raise ValueError(f"Observation index {int(observations.max())} is outside 0..{size - 1}")

    labels = np.full(size, -1, dtype=np.int64)
    labels[observations] = clusters
    return labels


def _load_and_validate(path_like: str | Path, schema: DatasetSchema) -> pd.DataFrame:
    path = Path(path_like)
    frame = _read_structured_file(path, schema)
    missing = schema.missing_required(frame.columns)
    if missing:
        raise MissingColumnsError(schema, missing)
    return schema.coerce_dtypes(frame)


def _read_structured_file(path: Path, schema: DatasetSchema) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path, dtype=schema.dtype_for_read())
    if suffix == ".json":
        return _read_json(path)
    raise ValueError(f"Unsupported file type '{suffix}' for {schema.name} data")


def _read_json(path: Path) -> pd.DataFrame:
    raw = path.read_text(encoding="utf-8").strip()
    if not raw:
        return pd.DataFrame()
    if raw[0] == "{":
        return pd.read_json(path, lines=True)
    return pd.read_json(path)

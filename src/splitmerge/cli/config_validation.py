"""Validate CLI configuration documents against the bundled JSON schemas."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import jsonschema

from splitmerge.config import ConfigurationError, SamplerConfig


_SCHEMA_FILENAMES: Mapping[str, str] = {
    "config": "config.schema.json",
}
_SCHEMA_DIRECTORY = Path(__file__).resolve().parent / "schema"


class ConfigValidationError(RuntimeError):
    """Raised when a configuration document fails schema validation."""

    def __init__(self, schema: str, message: str, path: str = "") -> None:
        detail = f"{schema} document failed validation: {message}"
        if path:
            detail = f"{detail} (path: {path})"
        super().__init__(detail)
        self.schema = schema
        self.message = message
        self.path = path


class SchemaValidator:
    """Validate configuration payloads using the package JSON schemas."""

    def validate(self, schema: str, payload: Mapping[str, Any]) -> None:
        validator = _load_validator(schema)
        error = jsonschema.exceptions.best_match(validator.iter_errors(payload))
        if error is not None:
            path = ".".join(str(part) for part in error.absolute_path)
            raise ConfigValidationError(schema, error.message, path)


@lru_cache(maxsize=None)
def _load_validator(schema: str) -> jsonschema.Validator:
    filename = _SCHEMA_FILENAMES.get(schema)
    if filename is None:
        raise ValueError(f"Unknown schema type '{schema}'")

    schema_path = _SCHEMA_DIRECTORY / filename
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file '{schema_path}' was not found")

    with schema_path.open(encoding="utf-8") as handle:
        payload = json.load(handle)

    jsonschema.Draft202012Validator.check_schema(payload)
    return jsonschema.Draft202012Validator(payload)


def load_config(path: str | Path, *, validator: SchemaValidator | None = None) -> SamplerConfig:
    """Read, schema-check and build a :class:`SamplerConfig` from a JSON file."""

    path = Path(path)
    with path.open(encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ConfigValidationError("config", "top-level value must be an object")
    (validator or SchemaValidator()).validate("config", payload)
    try:
        return SamplerConfig.from_mapping(payload)
    except (ConfigurationError, TypeError) as exc:
        raise ConfigValidationError("config", str(exc)) from exc


__all__ = [
    "ConfigValidationError",
    "SchemaValidator",
    "load_config",
]

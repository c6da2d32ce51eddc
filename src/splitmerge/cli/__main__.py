"""Command-line entry point for split-merge sampling runs."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from importlib import metadata
from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd

from splitmerge.cli.config_validation import ConfigValidationError, load_config
from splitmerge.config import ConfigurationError, SamplerConfig
from splitmerge.data import (
    distances_from_points,
    load_allocations,
    load_distance_matrix,
    load_points,
)
from splitmerge.diagnostics import (
    DIAGNOSTICS_VERSION,
    build_chain_diagnostics,
    co_clustering_matrix,
    write_csv,
    write_json,
)
from splitmerge.explain import hash_payload
from splitmerge.partition import Partition
from splitmerge.samplers import ChainResult, build_engine, run_chain

logger = logging.getLogger(__name__)


class SplitMergeCliError(RuntimeError):
    """Raised when CLI arguments cannot be satisfied."""


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _get_package_version() -> str:
    try:
        return metadata.version("bnp-splitmerge")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="splitmerge",
        description="Split-merge MCMC for Bayesian nonparametric clustering",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    version = _get_package_version()
    parser.add_argument(
        "--version",
        action="store_true",
        help=f"Show the installed bnp-splitmerge version ({version})",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        help="Logging verbosity for sampler progress messages",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="command")

    run = subparsers.add_parser(
        "run",
        help="Run a split-merge chain and write the retained allocations",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    run.add_argument(
        "--config",
        help="JSON sampler configuration (defaults are used for missing sections)",
    )
    inputs = run.add_mutually_exclusive_group()
    inputs.add_argument(
        "--distances",
        help="Square pairwise distance matrix (CSV with identifier header/index, or JSON rows)",
    )
    inputs.add_argument(
        "--points",
        help="Planar coordinates with X and Y columns; Euclidean distances are derived from them",
    )
    run.add_argument(
        "--initial",
        help="Starting allocations with Observation and Cluster columns (default: one cluster)",
    )
    run.add_argument(
        "--n",
        type=int,
        help="Number of observations when no distance, point or allocation input is given",
    )
    run.add_argument(
        "--output",
        required=True,
        help="Destination for retained allocations (CSV or JSON lines)",
    )
    run.add_argument("--iterations", type=int, help="Override chain.iterations")
    run.add_argument("--burn-in", dest="burn_in", type=int, help="Override chain.burn_in")
    run.add_argument("--seed", type=int, help="Override chain.seed")
    run.add_argument(
        "--diagnostics",
        help=f"Directory receiving the diagnostics payload ({DIAGNOSTICS_VERSION}) and co-clustering matrix",
    )
    run.add_argument(
        "--trace",
        help="Write one record per proposed move (JSON lines or CSV by suffix)",
    )
    run.set_defaults(handler=_handle_run)

    validate = subparsers.add_parser(
        "validate-config",
        help="Check a sampler configuration file without running a chain",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    validate.add_argument("config", help="JSON sampler configuration")
    validate.set_defaults(handler=_handle_validate_config)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if getattr(args, "version", False):
        print(f"bnp-splitmerge {_get_package_version()}")
        raise SystemExit(0)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return

    try:
        handler(args)
    except SplitMergeCliError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(f"Error: {exc}") from exc


def _handle_validate_config(args: argparse.Namespace) -> None:
    config = _load_config(args.config)
    print(json.dumps(config.to_dict(), indent=2, sort_keys=True))


def _handle_run(args: argparse.Namespace) -> None:
    config = _load_config(args.config) if args.config else SamplerConfig()
    _apply_overrides(config, args)
    if args.trace:
        config.chain.record_moves = True

    distances = _load_distances(args)
    labels = _load_initial(args, distances)
    n = _resolve_size(args, distances, labels)

    if config.needs_distances and distances is None:
        raise SplitMergeCliError("The configuration requires --distances or --points")

    if labels is None:
        labels = np.zeros(n, dtype=np.int64)
    partition = Partition.from_allocations(labels)
    rng = np.random.default_rng(config.chain.seed)

    try:
        engine = build_engine(config, partition, rng=rng, distances=distances)
    except ConfigurationError as exc:
        raise SplitMergeCliError(str(exc)) from exc

    logger.info("Configuration digest %s", hash_payload(config.to_dict()))
    result = run_chain(engine, config)

    _write_table(result.to_frame(), Path(args.output))
    if args.trace:
        _write_trace(result, Path(args.trace))
    if args.diagnostics:
        _write_diagnostics(result, config, Path(args.diagnostics))

    counts = result.move_counts
    print(
        f"Kept {result.n_draws} draws; accepted splits={counts['split']['accepted']} "
        f"merges={counts['merge']['accepted']} shuffles={counts['shuffle']['accepted']}"
    )


def _apply_overrides(config: SamplerConfig, args: argparse.Namespace) -> None:
    if args.iterations is not None:
        config.chain.iterations = args.iterations
    if args.burn_in is not None:
        config.chain.burn_in = args.burn_in
    if args.seed is not None:
        config.chain.seed = args.seed
    try:
        config.validate()
    except ConfigurationError as exc:
        raise SplitMergeCliError(str(exc)) from exc


def _load_config(location: str) -> SamplerConfig:
    try:
        return load_config(location)
    except FileNotFoundError as exc:
        raise SplitMergeCliError(f"Config file '{location}' was not found") from exc
    except json.JSONDecodeError as exc:
        raise SplitMergeCliError(f"Config file '{location}' is not valid JSON: {exc}") from exc
    except ConfigValidationError as exc:
        raise SplitMergeCliError(str(exc)) from exc


def _load_distances(args: argparse.Namespace) -> np.ndarray | None:
    if args.distances:
        return _load_dataset(load_distance_matrix, args.distances, "distances")
    if args.points:
        points = _load_dataset(load_points, args.points, "points")
        return distances_from_points(points)
    return None


def _load_initial(args: argparse.Namespace, distances: np.ndarray | None) -> np.ndarray | None:
    if not args.initial:
        return None
    size = int(distances.shape[0]) if distances is not None else args.n
    return _load_dataset(lambda path: load_allocations(path, n=size), args.initial, "initial allocations")


def _resolve_size(args: argparse.Namespace, distances: np.ndarray | None, labels: np.ndarray | None) -> int:
    if distances is not None:
        return int(distances.shape[0])
    if labels is not None:
        return int(labels.shape[0])
    if args.n is None:
        raise SplitMergeCliError("Provide --distances, --points, --initial or --n to size the partition")
    if args.n < 1:
        raise SplitMergeCliError("--n must be at least 1")
    return args.n


def _load_dataset(loader, location: str, label: str):
    try:
        return loader(location)
    except FileNotFoundError as exc:
        raise SplitMergeCliError(f"{label.capitalize()} file '{location}' was not found") from exc
    except ValueError as exc:
        raise SplitMergeCliError(str(exc)) from exc


def _write_table(frame: pd.DataFrame, path: Path) -> None:
    path = path.expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        if path.suffix.lower() in {".json", ".jsonl", ".ndjson"}:
            frame.to_json(path, orient="records", lines=True)
        else:
            frame.to_csv(path, index=False)
    except OSError as exc:  # pragma: no cover - unlikely in tests
        raise SplitMergeCliError(f"Failed to write output to '{path}': {exc}") from exc


def _write_trace(result: ChainResult, path: Path) -> None:
    _write_table(result.moves_frame(), path)


def _write_diagnostics(result: ChainResult, config: SamplerConfig, directory: Path) -> None:
    payload = dict(build_chain_diagnostics(result))
    payload["config"] = config.to_dict()
    payload["config_digest"] = hash_payload(config.to_dict())
    try:
        write_json(payload, directory)
        write_csv(co_clustering_matrix(result.allocations), directory)
    except (OSError, ValueError) as exc:
        raise SplitMergeCliError(f"Failed to write diagnostics to '{directory}': {exc}") from exc


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()

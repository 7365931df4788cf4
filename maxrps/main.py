from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

from .capacity import CapacityResult, DegenerateFitError, compute_capacity
from .charts import render_usl_chart
from .client import HttpTarget
from .config import (
    DEFAULT_ADDRESS,
    DEFAULT_CONCURRENCY_LEVELS,
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_REQUEST_TIMEOUT_S,
    DEFAULT_TIME_PER_LEVEL,
    ClientConfig,
    ConfigurationError,
    SweepConfig,
    build_sweep_config,
)
from .fitting import FitResult, OptimizationError, fit_usl
from .load import run_sweep
from .report import format_report, format_sample
from .samples import Sample, write_samples_csv

LOGGER = logging.getLogger("maxrps.main")

EXIT_OK = 0
EXIT_DEGENERATE_FIT = 1
EXIT_USAGE = 64


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Find the maximum requests per second an HTTP server or intermediary "
            "can sustain, using the Universal Scalability Law"
        )
    )
    parser.add_argument(
        "--address",
        default=os.environ.get("MAXRPS_ADDRESS", DEFAULT_ADDRESS),
        help="URL of http server or intermediary",
    )
    parser.add_argument(
        "--host",
        default=os.environ.get("MAXRPS_HOST", ""),
        help="value of Host header to set",
    )
    parser.add_argument(
        "--concurrency-levels",
        default=os.environ.get("MAXRPS_CONCURRENCY_LEVELS", DEFAULT_CONCURRENCY_LEVELS),
        help="comma-separated levels of concurrency to test with",
    )
    parser.add_argument(
        "--time-per-level",
        default=os.environ.get("MAXRPS_TIME_PER_LEVEL", DEFAULT_TIME_PER_LEVEL),
        help="how much time to spend testing each concurrency level (e.g. 10s, 1m)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="print out some extra information for debugging",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="skip TLS certificate verification",
    )
    parser.add_argument(
        "--no-reuse",
        action="store_true",
        help="disable keep-alive; open a new connection per request",
    )
    parser.add_argument(
        "--compress",
        action="store_true",
        help="allow compressed response bodies",
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=DEFAULT_CONNECT_TIMEOUT_S,
        help="seconds to wait for a connection to be established",
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=DEFAULT_REQUEST_TIMEOUT_S,
        help="seconds to wait for the server to send data",
    )
    parser.add_argument(
        "--output-dir",
        default=os.environ.get("MAXRPS_OUTPUT_DIR"),
        help="Directory to store samples CSV, chart and result manifest",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("MAXRPS_LOG_LEVEL", "INFO"),
        help="Logging level",
    )
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def write_artefacts(
    output_dir: Path,
    config: SweepConfig,
    samples: Sequence[Sample],
    fit: FitResult,
    capacity: CapacityResult | None,
    capacity_error: str | None,
) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = write_samples_csv(samples, output_dir / "samples.csv")
    LOGGER.info("Saved %d samples to %s", len(samples), csv_path)
    chart_path = render_usl_chart(samples, fit.parameters, capacity, output_dir / "usl_fit.png")

    manifest = {
        "address": config.address,
        "host": config.host,
        "time_per_level_s": config.time_per_level_s,
        "samples": [
            {
                "concurrency": s.concurrency,
                "throughput": s.throughput,
                "completed": s.completed,
                "errors": s.errors,
            }
            for s in samples
        ],
        "parameters": fit.parameters.as_dict(),
        "fit": {
            "success": fit.success,
            "message": fit.message,
            "iterations": fit.iterations,
            "residual_sum_squares": fit.residual_sum_squares,
            "r_squared": fit.r_squared,
        },
        "capacity": (
            {
                "max_concurrency": capacity.max_concurrency,
                "max_throughput": capacity.max_throughput,
            }
            if capacity is not None
            else None
        ),
        "capacity_error": capacity_error,
        "chart": str(chart_path),
    }
    manifest_path = output_dir / "result.json"
    with open(manifest_path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2)
    LOGGER.info("Result manifest written to %s", manifest_path)
    return manifest_path


def _usage_error(message: str) -> int:
    print(message, file=sys.stderr)
    print("Try --help for help.", file=sys.stderr)
    return EXIT_USAGE


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = build_sweep_config(
            address=args.address,
            concurrency_levels=args.concurrency_levels,
            time_per_level=args.time_per_level,
            host=args.host,
            debug=args.debug,
        )
    except ConfigurationError as exc:
        return _usage_error(str(exc))

    client_config = ClientConfig(
        insecure=args.insecure,
        keep_alive=not args.no_reuse,
        compress=args.compress,
        connect_timeout_s=args.connect_timeout,
        request_timeout_s=args.request_timeout,
    )
    target = HttpTarget(config.address, host=config.host, config=client_config)

    LOGGER.info("Target: %s (Host override: %s)", config.address, config.host or "<none>")
    LOGGER.info("Concurrency levels: %s", ", ".join(str(level) for level in config.levels))

    def print_sample(sample: Sample) -> None:
        if config.debug:
            print(format_sample(sample))

    samples = run_sweep(config.levels, target, config.time_per_level_s, on_sample=print_sample)

    try:
        fit = fit_usl(samples)
    except OptimizationError as exc:
        print("Optimization error:", exc)
        fit = exc.result

    capacity: CapacityResult | None = None
    capacity_error: str | None = None
    try:
        capacity = compute_capacity(fit.parameters)
    except DegenerateFitError as exc:
        capacity_error = str(exc)

    print(format_report(fit.parameters, capacity, fit.predictions, debug=config.debug))

    if args.output_dir:
        write_artefacts(Path(args.output_dir), config, samples, fit, capacity, capacity_error)

    if capacity_error is not None:
        print(f"Degenerate fit: {capacity_error}", file=sys.stderr)
        return EXIT_DEGENERATE_FIT
    return EXIT_OK


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()

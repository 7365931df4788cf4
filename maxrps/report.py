from __future__ import annotations

from typing import Sequence

from .capacity import CapacityResult
from .fitting import Prediction
from .samples import Sample
from .usl import USLParameters


def format_sample(sample: Sample) -> str:
    line = f"{sample.concurrency} {int(sample.throughput)}"
    if sample.errors:
        line += f" ({sample.errors} errors)"
    return line


def format_parameters(parameters: USLParameters) -> list[str]:
    return [
        f"sigma (the overhead of contention): {parameters.sigma}",
        f"kappa (the overhead of crosstalk): {parameters.kappa}",
        f"lambda (unloaded performance): {parameters.lambda_}",
    ]


def format_predictions(predictions: Sequence[Prediction]) -> list[str]:
    return [f"true {p.observed} pred {p.predicted}" for p in predictions]


def format_capacity(capacity: CapacityResult) -> list[str]:
    return [
        f"maxConcurrency: {capacity.max_concurrency}",
        f"maxRps: {capacity.max_throughput:f}",
    ]


def format_report(
    parameters: USLParameters,
    capacity: CapacityResult | None,
    predictions: Sequence[Prediction] = (),
    debug: bool = False,
) -> str:
    lines = format_parameters(parameters)
    if debug:
        lines.extend(format_predictions(predictions))
    if capacity is not None:
        lines.extend(format_capacity(capacity))
    return "\n".join(lines)


__all__ = [
    "format_capacity",
    "format_parameters",
    "format_predictions",
    "format_report",
    "format_sample",
]

from __future__ import annotations

import math
from dataclasses import dataclass

from .usl import USLParameters, throughput


class DegenerateFitError(ValueError):
    """The fitted curve has no contention-bound peak to report."""


@dataclass(frozen=True)
class CapacityResult:
    max_concurrency: int
    max_throughput: float


def compute_capacity(parameters: USLParameters) -> CapacityResult:
    """Concurrency at which the USL curve peaks, and the throughput there."""
    sigma, kappa = parameters.sigma, parameters.kappa
    if not (math.isfinite(sigma) and math.isfinite(kappa) and math.isfinite(parameters.lambda_)):
        raise DegenerateFitError(f"non-finite parameters: sigma={sigma}, kappa={kappa}, lambda={parameters.lambda_}")
    if sigma >= 1:
        raise DegenerateFitError(f"contention overhead sigma={sigma:g} >= 1, throughput never peaks")
    if kappa <= 0:
        raise DegenerateFitError(f"crosstalk overhead kappa={kappa:g} <= 0, no overload point")

    ratio = (1 - sigma) / kappa
    if not math.isfinite(ratio):
        raise DegenerateFitError(f"crosstalk overhead kappa={kappa:g} too small, peak concurrency unbounded")
    # Clamped to 1 on purpose: floor(sqrt(ratio)) alone would report 0 when
    # the peak sits below one worker, and levels are positive.
    max_concurrency = max(1, math.floor(math.sqrt(ratio)))
    max_throughput = throughput(max_concurrency, sigma, kappa, parameters.lambda_)
    return CapacityResult(max_concurrency=max_concurrency, max_throughput=float(max_throughput))


__all__ = ["CapacityResult", "DegenerateFitError", "compute_capacity"]

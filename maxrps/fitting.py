"""
Least-squares fit of the Universal Scalability Law to sweep samples.

The fit runs in unconstrained log space (parameter = exp(variable)) so the
optimiser never has to handle positivity bounds. A single local run is made
from ``INITIAL_GUESS``; there is no multi-start.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol, Sequence

import numpy as np
from scipy import optimize

from .samples import Sample, samples_to_arrays
from .usl import USLParameters, throughput, throughput_partials, to_parameters, to_parameters_derivative

LOGGER = logging.getLogger("maxrps.fitting")

# exp() of these gives sigma=1, kappa~0.37, lambda~0.05
INITIAL_GUESS: tuple[float, float, float] = (0.0, -1.0, -3.0)
# Looser than scipy's 1e-5 default; real samples are noisy.
GRADIENT_TOLERANCE = 1e-2
_LARGE_OBJECTIVE = 1e300

Objective = Callable[[np.ndarray], float]
Gradient = Callable[[np.ndarray], np.ndarray]


class OptimizationError(RuntimeError):
    """The optimiser did not report convergence.

    ``result`` holds the fit at the last iterate so callers can still use it.
    """

    def __init__(self, message: str, result: "FitResult") -> None:
        super().__init__(message)
        self.result = result


@dataclass
class OptimizerOutcome:
    x: np.ndarray
    success: bool
    message: str
    iterations: int = 0
    function_evals: int = 0


class Optimizer(Protocol):
    def __call__(self, objective: Objective, gradient: Gradient, x0: np.ndarray) -> OptimizerOutcome:
        ...


class ScipyLocalOptimizer:
    """Gradient based local minimisation through ``scipy.optimize.minimize``."""

    def __init__(
        self,
        method: str = "BFGS",
        gradient_tolerance: float = GRADIENT_TOLERANCE,
        max_iterations: int | None = None,
    ) -> None:
        self._method = method
        self._gradient_tolerance = gradient_tolerance
        self._max_iterations = max_iterations

    def __call__(self, objective: Objective, gradient: Gradient, x0: np.ndarray) -> OptimizerOutcome:
        options: dict[str, float | int] = {"gtol": self._gradient_tolerance}
        if self._max_iterations is not None:
            options["maxiter"] = self._max_iterations

        result = optimize.minimize(
            objective, x0, jac=gradient, method=self._method, options=options
        )
        return OptimizerOutcome(
            x=np.asarray(result.x, dtype=np.float64),
            success=bool(result.success),
            message=str(result.message),
            iterations=int(getattr(result, "nit", 0)),
            function_evals=int(getattr(result, "nfev", 0)),
        )


@dataclass(frozen=True)
class Prediction:
    concurrency: int
    observed: float
    predicted: float


@dataclass
class FitResult:
    parameters: USLParameters
    success: bool
    message: str
    iterations: int
    function_evals: int
    residual_sum_squares: float
    gradient_norm: float
    r_squared: float
    predictions: list[Prediction] = field(default_factory=list)


def build_objective(
    concurrency: np.ndarray, observed: np.ndarray
) -> tuple[Objective, Gradient]:
    """Sum of squared residuals over log-space variables, and its analytic gradient."""
    concurrency = np.asarray(concurrency, dtype=np.float64)
    observed = np.asarray(observed, dtype=np.float64)

    def objective(x: np.ndarray) -> float:
        with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
            params = to_parameters(x)
            predicted = throughput(concurrency, params.sigma, params.kappa, params.lambda_)
            residuals = predicted - observed
            total = float(np.sum(residuals * residuals))
        # Overflowing trial steps must look bad to the line search, not NaN.
        return total if np.isfinite(total) else _LARGE_OBJECTIVE

    def gradient(x: np.ndarray) -> np.ndarray:
        with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
            params = to_parameters(x)
            d_param_dx = to_parameters_derivative(x)
            predicted = throughput(concurrency, params.sigma, params.kappa, params.lambda_)
            d_mismatch_d_pred = 2 * (predicted - observed)
            partials = throughput_partials(concurrency, params.sigma, params.kappa, params.lambda_)
            grad = np.array(
                [
                    np.sum(d_mismatch_d_pred * partial * d_param_dx[idx])
                    for idx, partial in enumerate(partials)
                ],
                dtype=np.float64,
            )
        return np.nan_to_num(grad, nan=0.0, posinf=_LARGE_OBJECTIVE, neginf=-_LARGE_OBJECTIVE)

    return objective, gradient


def calculate_r_squared(observed: np.ndarray, predicted: np.ndarray) -> float:
    ss_res = float(np.sum((observed - predicted) ** 2))
    ss_tot = float(np.sum((observed - np.mean(observed)) ** 2))
    if ss_tot == 0:
        return 1.0 if ss_res == 0 else 0.0
    return max(0.0, min(1.0, 1 - ss_res / ss_tot))


def fit_usl(
    samples: Sequence[Sample],
    optimizer: Optimizer | None = None,
    initial_guess: Sequence[float] = INITIAL_GUESS,
) -> FitResult:
    """Fit sigma, kappa and lambda to ``samples``.

    Raises:
        ValueError: if ``samples`` is empty.
        OptimizationError: if the optimiser reports failure. The exception
            carries the last-iterate ``FitResult``.
    """
    if not samples:
        raise ValueError("at least one sample is required to fit the USL")

    concurrency, observed = samples_to_arrays(samples)
    # Fit on throughput scaled to O(1) so the first BFGS step stays bounded;
    # scaling only moves lambda, sigma and kappa are unaffected.
    scale = float(observed.max())
    if not np.isfinite(scale) or scale <= 0:
        scale = 1.0
    scaled_objective, scaled_gradient = build_objective(concurrency, observed / scale)
    optimizer = optimizer or ScipyLocalOptimizer()

    outcome = optimizer(scaled_objective, scaled_gradient, np.asarray(initial_guess, dtype=np.float64))

    x = np.array(outcome.x, dtype=np.float64)
    x[2] += np.log(scale)
    objective, gradient = build_objective(concurrency, observed)
    parameters = to_parameters(x)
    predicted = np.asarray(parameters.throughput(concurrency), dtype=np.float64)
    result = FitResult(
        parameters=parameters,
        success=outcome.success,
        message=outcome.message,
        iterations=outcome.iterations,
        function_evals=outcome.function_evals,
        residual_sum_squares=objective(x),
        gradient_norm=float(np.linalg.norm(gradient(x))),
        r_squared=calculate_r_squared(observed, predicted),
        predictions=[
            Prediction(concurrency=sample.concurrency, observed=sample.throughput, predicted=float(pred))
            for sample, pred in zip(samples, predicted)
        ],
    )

    LOGGER.info(
        "USL fit finished after %d iterations (%d evaluations): success=%s, rss=%.4g, r2=%.4f",
        result.iterations,
        result.function_evals,
        result.success,
        result.residual_sum_squares,
        result.r_squared,
    )
    if not outcome.success:
        raise OptimizationError(outcome.message, result)
    return result


__all__ = [
    "GRADIENT_TOLERANCE",
    "INITIAL_GUESS",
    "FitResult",
    "OptimizationError",
    "Optimizer",
    "OptimizerOutcome",
    "Prediction",
    "ScipyLocalOptimizer",
    "build_objective",
    "calculate_r_squared",
    "fit_usl",
]

"""
Universal Scalability Law.

    X(N) = lambda * N / (1 + sigma * (N - 1) + kappa * N * (N - 1))

``sigma`` is the contention overhead, ``kappa`` the crosstalk overhead and
``lambda`` the unloaded throughput of a single worker. All functions accept
scalars or numpy arrays for ``n``.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike


@dataclass(frozen=True)
class USLParameters:
    sigma: float
    kappa: float
    lambda_: float

    def throughput(self, n: ArrayLike) -> np.ndarray | float:
        return throughput(n, self.sigma, self.kappa, self.lambda_)

    def as_dict(self) -> dict[str, float]:
        return {"sigma": self.sigma, "kappa": self.kappa, "lambda": self.lambda_}


def _denominator(n, sigma, kappa):
    return 1 + sigma * (n - 1) + kappa * n * (n - 1)


def throughput(n: ArrayLike, sigma: float, kappa: float, lambda_: float) -> np.ndarray | float:
    n = np.asarray(n, dtype=np.float64)
    result = lambda_ * n / _denominator(n, sigma, kappa)
    return float(result) if result.ndim == 0 else result


def throughput_partials(
    n: ArrayLike, sigma: float, kappa: float, lambda_: float
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Partial derivatives of ``throughput`` with respect to sigma, kappa and lambda."""
    n = np.asarray(n, dtype=np.float64)
    numerator = lambda_ * n
    denom = _denominator(n, sigma, kappa)
    scale = numerator / (denom * denom)
    d_sigma = -scale * (n - 1)
    d_kappa = -scale * (n - 1) * n
    d_lambda = n / denom
    return d_sigma, d_kappa, d_lambda


def to_parameters(x: ArrayLike) -> USLParameters:
    """Map unconstrained optimisation variables to strictly positive parameters."""
    sigma, kappa, lambda_ = np.exp(np.asarray(x, dtype=np.float64))
    return USLParameters(sigma=float(sigma), kappa=float(kappa), lambda_=float(lambda_))


def to_parameters_derivative(x: ArrayLike) -> np.ndarray:
    # d/dx exp(x) = exp(x)
    return np.exp(np.asarray(x, dtype=np.float64))


__all__ = [
    "USLParameters",
    "throughput",
    "throughput_partials",
    "to_parameters",
    "to_parameters_derivative",
]

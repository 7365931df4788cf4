"""Tests for the Universal Scalability Law model."""

import math

import numpy as np
import pytest

from maxrps.usl import (
    USLParameters,
    throughput,
    throughput_partials,
    to_parameters,
    to_parameters_derivative,
)


class TestThroughput:
    @pytest.mark.parametrize("n", [1, 2, 7, 32, 1000])
    def test_linear_scaling_without_overhead(self, n):
        assert throughput(n, 0.0, 0.0, 250.0) == pytest.approx(250.0 * n)

    def test_single_worker_is_lambda(self):
        assert throughput(1, 0.3, 0.01, 42.0) == pytest.approx(42.0)

    def test_closed_form(self):
        n = 21
        expected = 1000 * n / (1 + 0.05 * (n - 1) + 0.002 * n * (n - 1))
        assert throughput(n, 0.05, 0.002, 1000) == pytest.approx(expected)

    def test_array_input(self):
        n = np.array([1, 5, 10])
        result = throughput(n, 0.0, 0.0, 10.0)
        assert isinstance(result, np.ndarray)
        np.testing.assert_allclose(result, [10.0, 50.0, 100.0])

    def test_scalar_returns_float(self):
        assert isinstance(throughput(3, 0.1, 0.01, 5.0), float)

    def test_parameters_method(self):
        params = USLParameters(sigma=0.05, kappa=0.002, lambda_=1000)
        assert params.throughput(10) == pytest.approx(throughput(10, 0.05, 0.002, 1000))
        assert params.as_dict() == {"sigma": 0.05, "kappa": 0.002, "lambda": 1000}


class TestPartials:
    @pytest.mark.parametrize("n", [1.0, 5.0, 10.0, 20.0, 50.0])
    def test_match_central_difference(self, n):
        sigma, kappa, lambda_ = 0.05, 0.002, 1000.0
        analytic = throughput_partials(n, sigma, kappa, lambda_)

        h = 1e-7
        numeric = (
            (throughput(n, sigma + h, kappa, lambda_) - throughput(n, sigma - h, kappa, lambda_)) / (2 * h),
            (throughput(n, sigma, kappa + h, lambda_) - throughput(n, sigma, kappa - h, lambda_)) / (2 * h),
            (throughput(n, sigma, kappa, lambda_ + h) - throughput(n, sigma, kappa, lambda_ - h)) / (2 * h),
        )
        for a, b in zip(analytic, numeric):
            assert float(a) == pytest.approx(b, rel=1e-4, abs=1e-4)

    def test_no_contention_terms_at_one_worker(self):
        d_sigma, d_kappa, d_lambda = throughput_partials(1.0, 0.2, 0.01, 100.0)
        assert float(d_sigma) == 0.0
        assert float(d_kappa) == 0.0
        assert float(d_lambda) == pytest.approx(1.0)


class TestReparameterisation:
    def test_exp_transform(self):
        params = to_parameters([0.0, -1.0, -3.0])
        assert params.sigma == pytest.approx(1.0)
        assert params.kappa == pytest.approx(math.exp(-1))
        assert params.lambda_ == pytest.approx(math.exp(-3))

    def test_always_positive(self):
        params = to_parameters([-50.0, -50.0, -50.0])
        assert params.sigma > 0 and params.kappa > 0 and params.lambda_ > 0

    def test_derivative_equals_transform(self):
        x = np.array([0.3, -2.0, 4.0])
        np.testing.assert_allclose(to_parameters_derivative(x), np.exp(x))

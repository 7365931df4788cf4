"""
Maximum sustainable request rate of an HTTP endpoint.

This package drives an endpoint with a sweep of concurrency levels, fits the
observed throughput to the Universal Scalability Law and reports the
concurrency at which throughput peaks.
"""

from .main import run

__all__ = ["run"]

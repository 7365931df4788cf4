from __future__ import annotations

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, ContextManager, Iterable, Protocol

import requests

from .client import RequestSender, new_body_buffer
from .config import ConfigurationError
from .latch import CountDownLatch
from .samples import Sample

LOGGER = logging.getLogger("maxrps.load")


@dataclass
class WorkerResult:
    completed: int
    errors: int


class LoadTarget(Protocol):
    def open(self, pool_size: int) -> ContextManager[RequestSender]:
        ...


class LevelRunner:
    """Drives ``concurrency`` workers against a sender for a fixed wall-clock window."""

    def __init__(
        self,
        sender: RequestSender,
        duration_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not math.isfinite(duration_seconds):
            raise ConfigurationError(f"invalid duration: {duration_seconds!r}")
        if duration_seconds < 1.0:
            raise ConfigurationError("timePerLevel cannot be less than 1 second.")
        self._sender = sender
        self._duration_s = duration_seconds
        self._clock = clock

    @property
    def whole_seconds(self) -> int:
        return int(self._duration_s)

    def run(self, concurrency: int) -> Sample:
        if concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {concurrency}")

        ready = CountDownLatch(concurrency)
        start = CountDownLatch(1)

        with ThreadPoolExecutor(
            max_workers=concurrency, thread_name_prefix=f"maxrps-level-{concurrency}"
        ) as executor:
            futures = [
                executor.submit(self._worker, ready, start) for _ in range(concurrency)
            ]
            ready.wait()
            started_at = self._clock()
            start.count_down()
            results = [future.result() for future in futures]
            finished_at = self._clock()

        completed = sum(result.completed for result in results)
        errors = sum(result.errors for result in results)
        # Whole seconds only; sub-second remainders are dropped.
        throughput = completed // self.whole_seconds

        LOGGER.info(
            "Level %d finished in %.2fs: %d completed, %d errors, %d req/s",
            concurrency,
            finished_at - started_at,
            completed,
            errors,
            throughput,
        )
        return Sample(
            concurrency=concurrency,
            throughput=float(throughput),
            completed=completed,
            errors=errors,
        )

    def _worker(self, ready: CountDownLatch, start: CountDownLatch) -> WorkerResult:
        try:
            body_buffer = new_body_buffer()
        finally:
            # The runner must not block on a worker that died before it was ready.
            ready.count_down()
        start.wait()

        completed = 0
        errors = 0
        started = self._clock()
        while self._clock() - started <= self._duration_s:
            try:
                self._sender(body_buffer)
            except requests.RequestException as exc:
                errors += 1
                LOGGER.warning("Error issuing request %s", exc)
                continue
            completed += 1
        return WorkerResult(completed=completed, errors=errors)


def run_sweep(
    levels: Iterable[int],
    target: LoadTarget,
    duration_seconds: float,
    on_sample: Callable[[Sample], None] | None = None,
    runner_factory: Callable[[RequestSender, float], LevelRunner] = LevelRunner,
) -> list[Sample]:
    """Run one level after another and collect their samples in request order."""
    samples: list[Sample] = []
    for level in levels:
        LOGGER.info("Testing concurrency level %d for %.2fs", level, duration_seconds)
        with target.open(level) as sender:
            sample = runner_factory(sender, duration_seconds).run(level)
        samples.append(sample)
        if on_sample is not None:
            on_sample(sample)
    return samples


__all__ = ["LevelRunner", "LoadTarget", "WorkerResult", "run_sweep"]

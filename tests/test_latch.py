"""Tests for the countdown latch used to synchronise worker start."""

import threading
import time

import pytest

from maxrps.latch import CountDownLatch


class TestCountDownLatch:
    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            CountDownLatch(-1)

    def test_zero_count_is_open(self):
        latch = CountDownLatch(0)
        assert latch.wait(timeout=0.01) is True

    def test_wait_times_out_while_closed(self):
        latch = CountDownLatch(2)
        latch.count_down()
        assert latch.count == 1
        assert latch.wait(timeout=0.05) is False

    def test_count_never_goes_below_zero(self):
        latch = CountDownLatch(1)
        latch.count_down()
        latch.count_down()
        assert latch.count == 0

    def test_releases_all_waiters_together(self):
        latch = CountDownLatch(1)
        released = []
        lock = threading.Lock()

        def waiter():
            latch.wait()
            with lock:
                released.append(time.monotonic())

        threads = [threading.Thread(target=waiter) for _ in range(5)]
        for thread in threads:
            thread.start()

        time.sleep(0.1)
        assert released == []

        opened_at = time.monotonic()
        latch.count_down()
        for thread in threads:
            thread.join(timeout=5.0)

        assert len(released) == 5
        assert all(ts >= opened_at for ts in released)

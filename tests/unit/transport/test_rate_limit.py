"""Tests for TokenBucket throttling."""

from types import SimpleNamespace

import pytest

from cluster_client_core.transport import rate_limit
from cluster_client_core.transport.rate_limit import TokenBucket


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestTokenBucket:
    @pytest.mark.unit
    def test_burst_passes_without_delay(self):
        bucket = TokenBucket(qps=10, burst=3, clock=FakeClock())

        assert [bucket.reserve() for _ in range(3)] == [0.0, 0.0, 0.0]

    @pytest.mark.unit
    def test_requests_beyond_burst_are_delayed(self):
        bucket = TokenBucket(qps=10, burst=2, clock=FakeClock())
        bucket.reserve()
        bucket.reserve()

        assert bucket.reserve() == pytest.approx(0.1)
        assert bucket.reserve() == pytest.approx(0.2)

    @pytest.mark.unit
    def test_refills_over_time(self):
        clock = FakeClock()
        bucket = TokenBucket(qps=10, burst=1, clock=clock)
        bucket.reserve()

        clock.now = 0.1

        assert bucket.reserve() == pytest.approx(0.0)

    @pytest.mark.unit
    def test_refill_is_capped_at_burst(self):
        clock = FakeClock()
        bucket = TokenBucket(qps=10, burst=2, clock=clock)

        clock.now = 60.0

        assert [bucket.reserve() for _ in range(2)] == [0.0, 0.0]
        assert bucket.reserve() > 0

    @pytest.mark.unit
    def test_zero_qps_disables_throttling(self):
        bucket = TokenBucket(qps=0, burst=1, clock=FakeClock())

        assert not bucket.enabled
        assert all(bucket.reserve() == 0.0 for _ in range(100))

    @pytest.mark.unit
    def test_acquire_sleeps_for_delay(self, monkeypatch):
        sleeps = []
        monkeypatch.setattr("cluster_client_core.transport.rate_limit.time.sleep", sleeps.append)
        bucket = TokenBucket(qps=4, burst=1, clock=FakeClock())

        bucket.acquire()
        bucket.acquire()

        assert sleeps == [pytest.approx(0.25)]

    @pytest.mark.unit
    async def test_acquire_async_sleeps_for_delay(self, monkeypatch):
        sleeps = []

        async def fake_sleep(delay):
            sleeps.append(delay)

        monkeypatch.setattr(rate_limit, "asyncio", SimpleNamespace(sleep=fake_sleep))
        bucket = TokenBucket(qps=4, burst=1, clock=FakeClock())

        await bucket.acquire_async()
        await bucket.acquire_async()

        assert sleeps == [pytest.approx(0.25)]

"""
Circuit breaker tests.

Run with: uv run pytest tests/test_circuit_breaker.py -v
"""

import pytest

from src.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitConfig,
    CircuitOpenError,
    CircuitState,
)
from src.resilience.errors import StageUnavailable


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


async def ok():
    return "ok"


async def broken():
    raise StageUnavailable("api", "500")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def breaker(clock):
    return CircuitBreaker("api", CircuitConfig(failure_threshold=2, reset_timeout_sec=10), clock=clock)


class TestCircuitBreaker:
    @pytest.mark.asyncio
    async def test_passes_through_when_closed(self, breaker):
        assert await breaker.call(ok) == "ok"
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self, breaker):
        for _ in range(2):
            with pytest.raises(StageUnavailable):
                await breaker.call(broken)

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitOpenError):
            await breaker.call(ok)
        assert breaker.stats.total_rejections == 1

    @pytest.mark.asyncio
    async def test_open_circuit_is_a_stage_unavailable(self, breaker):
        for _ in range(2):
            with pytest.raises(StageUnavailable):
                await breaker.call(broken)

        with pytest.raises(StageUnavailable) as exc:
            await breaker.call(ok)
        assert exc.value.reason == "circuit open"

    @pytest.mark.asyncio
    async def test_half_open_probe_closes(self, breaker, clock):
        for _ in range(2):
            with pytest.raises(StageUnavailable):
                await breaker.call(broken)

        clock.now += 10
        assert await breaker.call(ok) == "ok"
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self, breaker, clock):
        for _ in range(2):
            with pytest.raises(StageUnavailable):
                await breaker.call(broken)

        clock.now += 10
        with pytest.raises(StageUnavailable):
            await breaker.call(broken)
        assert breaker.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, breaker):
        with pytest.raises(StageUnavailable):
            await breaker.call(broken)
        await breaker.call(ok)
        with pytest.raises(StageUnavailable):
            await breaker.call(broken)

        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_reset(self, breaker):
        for _ in range(2):
            with pytest.raises(StageUnavailable):
                await breaker.call(broken)
        breaker.reset()
        assert breaker.state == CircuitState.CLOSED

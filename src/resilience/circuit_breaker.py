"""
Circuit Breaker
===============
Fail-fast guard for remote data collaborators.

States:
- CLOSED: Normal operation, lookups pass through
- OPEN: Collaborator considered down, lookups fail immediately
- HALF_OPEN: One probe lookup allowed to test recovery

An open circuit raises CircuitOpenError, which is a StageUnavailable, so
the calling stage switches to its fallback without waiting on a dead API.
"""

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from loguru import logger
from pydantic import BaseModel

from src.resilience.errors import StageUnavailable


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitConfig(BaseModel):
    """Circuit breaker configuration."""
    failure_threshold: int = 3   # Consecutive failures before opening
    success_threshold: int = 1   # Probe successes to close from half-open
    reset_timeout_sec: float = 30.0


class CircuitStats(BaseModel):
    """Circuit breaker statistics."""
    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    success_count: int = 0
    opened_at: Optional[float] = None
    total_calls: int = 0
    total_failures: int = 0
    total_rejections: int = 0


class CircuitOpenError(StageUnavailable):
    """Raised when the circuit is open."""

    def __init__(self, name: str):
        super().__init__(name, "circuit open")


class CircuitBreaker:
    """
    Wraps async collaborator calls.

    Usage:
        breaker = CircuitBreaker("agmarknet")
        snapshot = await breaker.call(self._fetch, crop, location)
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.config = config or CircuitConfig()
        self._clock = clock
        self._stats = CircuitStats()
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._stats.state

    @property
    def stats(self) -> CircuitStats:
        return self._stats

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Execute an async function through the breaker.

        Raises:
            CircuitOpenError: If the circuit is open
        """
        async with self._lock:
            self._stats.total_calls += 1
            self._maybe_half_open()
            if self._stats.state == CircuitState.OPEN:
                self._stats.total_rejections += 1
                raise CircuitOpenError(self.name)

        try:
            result = await func(*args, **kwargs)
        except asyncio.CancelledError:
            raise
        except Exception:
            await self._on_failure()
            raise

        await self._on_success()
        return result

    async def _on_success(self):
        async with self._lock:
            if self._stats.state == CircuitState.HALF_OPEN:
                self._stats.success_count += 1
                if self._stats.success_count >= self.config.success_threshold:
                    self._transition_to(CircuitState.CLOSED)
            else:
                self._stats.failure_count = 0

    async def _on_failure(self):
        async with self._lock:
            self._stats.failure_count += 1
            self._stats.total_failures += 1

            if self._stats.state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.OPEN)
            elif self._stats.failure_count >= self.config.failure_threshold:
                self._transition_to(CircuitState.OPEN)

    def _maybe_half_open(self):
        if self._stats.state != CircuitState.OPEN or self._stats.opened_at is None:
            return
        if self._clock() - self._stats.opened_at >= self.config.reset_timeout_sec:
            self._transition_to(CircuitState.HALF_OPEN)

    def _transition_to(self, new_state: CircuitState):
        old_state = self._stats.state
        if old_state == new_state:
            return

        self._stats.state = new_state
        if new_state == CircuitState.OPEN:
            self._stats.opened_at = self._clock()
        elif new_state == CircuitState.CLOSED:
            self._stats.failure_count = 0
            self._stats.success_count = 0
            self._stats.opened_at = None
        else:
            self._stats.success_count = 0

        logger.info(
            "Circuit '{}' transitioned: {} -> {}",
            self.name, old_state.value, new_state.value
        )

    def reset(self):
        """Reset circuit to closed state."""
        self._stats = CircuitStats()
        logger.info("Circuit '{}' reset", self.name)

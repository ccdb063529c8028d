#!/usr/bin/env python3
"""Resilience Patterns for controller calls.

This module provides the fault-tolerance helpers used by the controller
client and the deployment use cases:
    - Retry with exponential backoff (``retry_async``)
    - Circuit breaker guarding the controller endpoint
    - Named concurrent fan-out that captures failures per task
    - Sequential batches with concurrent work inside each batch

Example:
    circuit = CircuitBreaker(failure_threshold=5, timeout=60)
    result = await circuit.call(client.get, "/v3/profiles/p1")

    outcomes = await process_in_batches(profiles, assign_one, batch_size=5)
"""
import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Iterator, Optional, Sequence, TypeVar

from .exceptions import (
    CircuitOpenError,
    NetworkError,
    RateLimitError,
    ServerError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================
# Retry with Exponential Backoff
# ============================================

DEFAULT_RETRYABLE_EXCEPTIONS = (
    NetworkError,
    RateLimitError,
    ServerError,
    asyncio.TimeoutError,
)


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args,
    max_attempts: int = 3,
    backoff_factor: float = 2.0,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    retryable_exceptions: tuple = DEFAULT_RETRYABLE_EXCEPTIONS,
    **kwargs,
) -> T:
    """Retry an async call with exponential backoff and jitter.

    Args:
        func: Async function to call
        *args: Arguments to pass to func
        max_attempts: Maximum attempts (including the first)
        backoff_factor: Delay multiplier
        initial_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        retryable_exceptions: Exceptions to retry on; anything else propagates
        **kwargs: Keyword arguments to pass to func

    Returns:
        Result from func
    """
    delay = initial_delay

    for attempt in range(1, max_attempts + 1):
        try:
            return await func(*args, **kwargs)

        except retryable_exceptions as e:
            if isinstance(e, RateLimitError) and e.retry_after:
                delay = float(e.retry_after)

            if attempt >= max_attempts:
                logger.error(f"All {max_attempts} attempts failed. Last error: {e}")
                raise

            actual_delay = min(delay * (0.5 + random.random()), max_delay)
            logger.warning(
                f"Attempt {attempt}/{max_attempts} failed: {e}. "
                f"Retrying in {actual_delay:.1f}s"
            )
            await asyncio.sleep(actual_delay)
            delay = min(delay * backoff_factor, max_delay)

    raise RuntimeError("Retry logic error")


# ============================================
# Circuit Breaker
# ============================================

class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Circuit breaker to stop hammering a failing controller.

    State Transitions:
        CLOSED -> OPEN: When failure_count >= failure_threshold
        OPEN -> HALF_OPEN: When timeout expires
        HALF_OPEN -> CLOSED: When success_threshold test requests succeed
        HALF_OPEN -> OPEN: When a test request fails

    Only exceptions matching ``counted_exceptions`` move the breaker; a 404
    for a deleted profile is an answer, not an outage.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: float = 60.0,
        success_threshold: int = 2,
        name: str = "default",
        counted_exceptions: tuple = (Exception,),
    ):
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.success_threshold = success_threshold
        self.name = name
        self.counted_exceptions = counted_exceptions

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: Optional[datetime] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == CircuitState.OPEN

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def _should_attempt(self) -> bool:
        if self._state != CircuitState.OPEN:
            return True

        if self._last_failure_time:
            elapsed = (datetime.now(timezone.utc) - self._last_failure_time).total_seconds()
            return elapsed >= self.timeout
        return False

    async def call(
        self,
        func: Callable[..., Awaitable[T]],
        *args,
        **kwargs,
    ) -> T:
        """Execute func through the circuit breaker.

        Raises:
            CircuitOpenError: If the circuit is open and timeout hasn't passed
            Any exception from func (after updating circuit state)
        """
        async with self._lock:
            if not self._should_attempt():
                reset_at = None
                if self._last_failure_time:
                    reset_at = self._last_failure_time + timedelta(seconds=self.timeout)

                raise CircuitOpenError(
                    f"Circuit breaker '{self.name}' is open",
                    reset_at=reset_at,
                    failure_count=self._failure_count,
                )

            if self._state == CircuitState.OPEN:
                logger.info(f"Circuit '{self.name}' transitioning to HALF_OPEN")
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0

        try:
            result = await func(*args, **kwargs)
        except self.counted_exceptions as e:
            await self._on_failure(e)
            raise

        await self._on_success()
        return result

    async def _on_success(self):
        async with self._lock:
            self._failure_count = 0

            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    logger.info(
                        f"Circuit '{self.name}' closing after "
                        f"{self._success_count} successes"
                    )
                    self._state = CircuitState.CLOSED
                    self._success_count = 0

    async def _on_failure(self, exception: Exception):
        async with self._lock:
            self._failure_count += 1
            self._last_failure_time = datetime.now(timezone.utc)

            if self._state == CircuitState.HALF_OPEN:
                logger.warning(
                    f"Circuit '{self.name}' reopening after test failure: {exception}"
                )
                self._state = CircuitState.OPEN

            elif self._state == CircuitState.CLOSED:
                if self._failure_count >= self.failure_threshold:
                    logger.warning(
                        f"Circuit '{self.name}' opening after "
                        f"{self._failure_count} failures"
                    )
                    self._state = CircuitState.OPEN

    def reset(self):
        """Manually reset the circuit breaker to closed state."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time = None
        logger.info(f"Circuit '{self.name}' manually reset")

    def get_status(self) -> dict[str, Any]:
        """Get circuit breaker status for the health endpoint."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "timeout_seconds": self.timeout,
            "last_failure_at": (
                self._last_failure_time.isoformat()
                if self._last_failure_time
                else None
            ),
        }


# ============================================
# Concurrent Processing Patterns
# ============================================

def chunk(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Split items into consecutive lists of at most size elements."""
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for i in range(0, len(items), size):
        yield list(items[i:i + size])


async def run_concurrent_tasks(
    tasks_dict: dict[str, Callable[[], Awaitable[T]]],
) -> dict[str, T | Exception]:
    """Run named tasks concurrently, capturing each task's failure.

    No exception escapes: a failing task maps to its exception in the
    returned dict, and the other tasks run to completion.

    Example:
        results = await run_concurrent_tasks({
            "site-a": lambda: discover("site-a"),
            "site-b": lambda: discover("site-b"),
        })
        if isinstance(results["site-a"], Exception):
            ...
    """
    async def execute_named(name: str, func: Callable[[], Awaitable[T]]) -> tuple[str, T | Exception]:
        try:
            return (name, await func())
        except Exception as e:
            return (name, e)

    outcomes = await asyncio.gather(
        *[execute_named(name, func) for name, func in tasks_dict.items()]
    )
    return dict(outcomes)


async def process_in_batches(
    items: Sequence[T],
    processor: Callable[[T], Awaitable[Any]],
    batch_size: int = 5,
) -> list[Any]:
    """Process items in sequential batches, concurrently within a batch.

    At most ``batch_size`` calls are in flight; batch N+1 starts only after
    every call of batch N has finished. A processor exception is returned in
    place of that item's result.

    Args:
        items: Items to process
        processor: Async function applied to each item
        batch_size: Maximum concurrent calls per batch

    Returns:
        List of results (or exceptions) in the same order as items
    """
    results: list[Any] = []
    for batch_num, batch in enumerate(chunk(items, batch_size), start=1):
        logger.debug(f"Processing batch {batch_num} ({len(batch)} items)")
        outcomes = await asyncio.gather(
            *[processor(item) for item in batch],
            return_exceptions=True,
        )
        results.extend(outcomes)
    return results


__all__ = [
    "retry_async",
    "DEFAULT_RETRYABLE_EXCEPTIONS",
    "CircuitBreaker",
    "CircuitState",
    "chunk",
    "run_concurrent_tasks",
    "process_in_batches",
]

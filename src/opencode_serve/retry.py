"""Retry policy with exponential backoff and an optional circuit breaker.

Retries wrap single transport calls. Whether an error is retried depends
only on its ErrorKind (see exceptions.is_retryable). Task cancellation is
never retried: asyncio.CancelledError is a BaseException and passes
straight through.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

from .config import OpenCodeClientOptions
from .exceptions import CircuitOpenError, is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


def calculate_backoff(attempt: int, base_delay: float, jitter: float = 0.0) -> float:
    """Delay before retry number ``attempt`` (1-indexed).

    Pure exponential: base, 2x base, 4x base, ... with no cap. When
    ``jitter`` is set a random amount in [0, jitter] is added.
    """
    delay = base_delay * (2 ** (attempt - 1))
    if jitter > 0:
        delay += random.uniform(0, jitter)
    return delay


# =============================================================================
# Circuit breaker
# =============================================================================


class CircuitState(str, Enum):
    """Circuit breaker state machine."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Fail fast after repeated retryable failures.

    After ``threshold`` consecutive failures the circuit opens and every call
    raises CircuitOpenError without touching the network. Once
    ``open_duration`` has elapsed a single trial call is let through; its
    outcome closes the circuit again or re-opens it.
    """

    def __init__(
        self,
        threshold: int = 5,
        open_duration: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.threshold = threshold
        self.open_duration = open_duration
        self._clock = clock
        self._failures = 0
        self._opened_at: float | None = None
        self._state = CircuitState.CLOSED

    @property
    def state(self) -> CircuitState:
        if self._state is CircuitState.OPEN and self._remaining() <= 0:
            return CircuitState.HALF_OPEN
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failures

    def _remaining(self) -> float:
        if self._opened_at is None:
            return 0.0
        return self.open_duration - (self._clock() - self._opened_at)

    def before_call(self, name: str) -> None:
        """Raise CircuitOpenError if the circuit does not admit a call."""
        state = self.state
        if state is CircuitState.OPEN:
            remaining = max(self._remaining(), 0.0)
            raise CircuitOpenError(
                f"Circuit open for {name} after {self._failures} consecutive failures. "
                f"Retry in {remaining:.1f}s.",
                retry_after=remaining,
            )
        if state is CircuitState.HALF_OPEN:
            self._state = CircuitState.HALF_OPEN
            logger.info(f"Circuit half-open, allowing trial call for {name}")

    def record_success(self) -> None:
        if self._state is not CircuitState.CLOSED:
            logger.info("Circuit closed after successful call")
        self._failures = 0
        self._opened_at = None
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failures += 1
        if self._state is CircuitState.HALF_OPEN or self._failures >= self.threshold:
            self._opened_at = self._clock()
            self._state = CircuitState.OPEN
            logger.warning(
                f"Circuit opened after {self._failures} failures "
                f"for {self.open_duration:.1f}s"
            )


# =============================================================================
# Retry policy
# =============================================================================


@dataclass
class RetryPolicy:
    """Bounded retry loop for async operations.

    ``max_attempts`` is the total number of calls: 3 means one call and two
    retries. Zero or one means a single call.
    """

    enabled: bool = True
    max_attempts: int = 3
    base_delay: float = 2.0
    jitter: float = 0.0
    circuit_breaker: CircuitBreaker | None = None
    sleep: SleepFn = field(default=asyncio.sleep, repr=False)

    @classmethod
    def from_options(cls, options: OpenCodeClientOptions) -> RetryPolicy:
        breaker = None
        if options.circuit_breaker_enabled:
            breaker = CircuitBreaker(
                options.circuit_breaker_threshold, options.circuit_breaker_duration
            )
        return cls(
            enabled=options.enable_retry,
            max_attempts=options.max_retry_attempts,
            base_delay=options.retry_delay,
            jitter=options.retry_jitter,
            circuit_breaker=breaker,
        )

    @property
    def total_attempts(self) -> int:
        if not self.enabled:
            return 1
        return max(self.max_attempts, 1)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        name: str = "operation",
        *,
        retry_if: Callable[[BaseException], bool] = is_retryable,
    ) -> T:
        """Run ``operation`` until it succeeds or retries are exhausted.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            name: Operation name for log messages
            retry_if: Narrows which retryable failures are attempted again

        Returns:
            The operation's result

        Raises:
            The last exception raised by the operation, unchanged
        """
        max_attempts = self.total_attempts
        attempt = 0

        while True:
            attempt += 1
            if self.circuit_breaker is not None:
                self.circuit_breaker.before_call(name)

            try:
                result = await operation()
            except Exception as e:
                retryable = is_retryable(e)
                if self.circuit_breaker is not None:
                    # Non-retryable errors mean the server answered
                    if retryable:
                        self.circuit_breaker.record_failure()
                    else:
                        self.circuit_breaker.record_success()
                if not retryable or not retry_if(e) or attempt >= max_attempts:
                    raise

                delay = calculate_backoff(attempt, self.base_delay, self.jitter)
                logger.warning(
                    f"Operation {name} failed (attempt {attempt}/{max_attempts}): "
                    f"{str(e).rstrip('.')}. "
                    f"Retrying in {delay:.1f}s..."
                )
                await self.sleep(delay)
                continue

            if self.circuit_breaker is not None:
                self.circuit_breaker.record_success()
            return result

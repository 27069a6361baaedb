"""Bounded retry with exponential backoff."""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from .errors import ErrorKind, RateLimitError, TuteliqError

T = TypeVar("T")

# Every kind must be listed; callers rely on this being exhaustive.
RETRYABLE_KINDS: Dict[ErrorKind, bool] = {
    ErrorKind.VALIDATION: False,
    ErrorKind.AUTHENTICATION: False,
    ErrorKind.TIER_ACCESS: False,
    ErrorKind.NOT_FOUND: False,
    ErrorKind.RATE_LIMIT: True,
    ErrorKind.QUOTA_EXCEEDED: False,
    ErrorKind.SERVER: True,
    ErrorKind.TIMEOUT: True,
    ErrorKind.NETWORK: True,
    ErrorKind.GENERIC: False,
    ErrorKind.STREAM: False,
}

JITTER_RATIO = 0.5


def backoff_delay(
    attempt: int,
    initial_delay_ms: float,
    max_delay_ms: float = 30000,
    rng: Optional[random.Random] = None,
) -> float:
    """Compute the wait before a retry, in milliseconds.

    Grows as ``initial * 2 ** (attempt - 1)`` plus up to 50% random jitter,
    capped at ``max_delay_ms``. The jitter never exceeds the doubling step,
    so delays are non-decreasing in ``attempt``.

    Args:
        attempt: Retry number, 1 for the first retry
        initial_delay_ms: Base delay for the first retry
        max_delay_ms: Upper bound on any delay
        rng: Optional random source for deterministic testing
    """
    if attempt < 1 or initial_delay_ms <= 0:
        return 0.0
    base = initial_delay_ms * (2 ** (attempt - 1))
    jitter = base * JITTER_RATIO * (rng or random).random()
    return max(0.0, min(base + jitter, max_delay_ms))


def is_retryable(error: BaseException) -> bool:
    """Whether an attempt that failed with ``error`` may be retried."""
    if not isinstance(error, TuteliqError):
        return False
    return RETRYABLE_KINDS[error.kind]


@dataclass
class RetryPolicy:
    """Retry bounds for a logical call."""

    max_retries: int = 3
    initial_delay_ms: float = 1000
    max_delay_ms: float = 30000


@dataclass
class RetryState:
    """State of a retry loop between attempts."""

    attempt: int = 0
    last_error: Optional[TuteliqError] = None
    next_delay_ms: Optional[float] = None


async def with_retry(
    attempt_fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    on_retry: Optional[Callable[[RetryState], None]] = None,
    rng: Optional[random.Random] = None,
) -> T:
    """Run ``attempt_fn`` with up to ``policy.max_retries`` retries.

    Only network, timeout, server and rate-limit failures are retried.
    Rate-limit failures wait for the server's ``retry_after`` hint when
    present, capped at ``policy.max_delay_ms``. Any other failure, or the last one once retries are used up,
    is raised unchanged.

    Args:
        attempt_fn: Zero-argument coroutine function performing one attempt
        policy: Retry bounds
        sleep: Sleep function taking seconds (defaults to asyncio.sleep)
        on_retry: Called with the loop state before each wait
        rng: Random source passed to the backoff scheduler

    Returns:
        The first successful result
    """
    _sleep = sleep or asyncio.sleep
    state = RetryState()

    while True:
        state.attempt += 1
        try:
            return await attempt_fn()
        except TuteliqError as e:
            state.last_error = e
            if not is_retryable(e) or state.attempt > policy.max_retries:
                raise

            if isinstance(e, RateLimitError) and e.retry_after is not None:
                state.next_delay_ms = min(float(e.retry_after * 1000), policy.max_delay_ms)
            else:
                state.next_delay_ms = backoff_delay(
                    state.attempt, policy.initial_delay_ms, policy.max_delay_ms, rng=rng
                )

        if on_retry is not None:
            on_retry(state)
        await _sleep(state.next_delay_ms / 1000)

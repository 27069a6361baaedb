"""Tests for the retry controller and backoff scheduler."""

import random

import pytest

from tuteliq import (
    AuthenticationError,
    NetworkError,
    NotFoundError,
    QuotaExceededError,
    RateLimitError,
    RequestTimeoutError,
    RetryPolicy,
    ServerError,
    StreamError,
    TierAccessError,
    TuteliqError,
    ValidationError,
    backoff_delay,
    with_retry,
)
from tuteliq.errors import ErrorKind
from tuteliq.retry import RETRYABLE_KINDS, is_retryable


class FakeSleep:
    """Records requested sleeps instead of waiting."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def scripted(*outcomes):
    """Attempt function returning or raising each outcome in turn."""
    remaining = list(outcomes)
    calls = []

    async def attempt():
        calls.append(1)
        outcome = remaining.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    attempt.calls = calls
    return attempt


class TestBackoffDelay:
    """Tests for backoff delay computation."""

    def test_zero_for_no_retry(self):
        """Should not wait before the first attempt."""
        assert backoff_delay(0, 1000) == 0.0

    def test_zero_for_zero_initial_delay(self):
        """Should not wait when the initial delay is zero."""
        assert backoff_delay(3, 0) == 0.0

    def test_first_retry_within_jitter_bounds(self):
        """Should wait at least the initial delay plus at most 50% jitter."""
        rng = random.Random(7)
        for _ in range(100):
            delay = backoff_delay(1, 1000, rng=rng)
            assert 1000 <= delay < 1500

    @pytest.mark.parametrize("seed", range(20))
    def test_non_decreasing_and_non_negative(self, seed):
        """Should never shrink as the attempt number grows."""
        rng = random.Random(seed)
        delays = [backoff_delay(attempt, 250, rng=rng) for attempt in range(1, 12)]

        assert all(d >= 0 for d in delays)
        assert delays == sorted(delays)

    def test_capped_at_max_delay(self):
        """Should never exceed the maximum delay."""
        assert backoff_delay(20, 1000, max_delay_ms=30000) == 30000

    def test_deterministic_with_seeded_rng(self):
        """Should produce the same delay for the same seed."""
        assert backoff_delay(3, 100, rng=random.Random(1)) == backoff_delay(
            3, 100, rng=random.Random(1)
        )


class TestRetryableKinds:
    """Tests for the retryable classification."""

    def test_every_kind_is_classified(self):
        """Should list every error kind."""
        assert set(RETRYABLE_KINDS) == set(ErrorKind)

    @pytest.mark.parametrize(
        "error",
        [
            ServerError("down", status_code=503),
            RateLimitError("slow down"),
            RequestTimeoutError("timed out"),
            NetworkError("reset"),
        ],
    )
    def test_retryable(self, error):
        assert is_retryable(error)

    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("bad"),
            AuthenticationError("no key"),
            TierAccessError("upgrade"),
            NotFoundError("missing"),
            QuotaExceededError("quota"),
            TuteliqError("generic"),
            StreamError("stream"),
            RuntimeError("not ours"),
        ],
    )
    def test_not_retryable(self, error):
        assert not is_retryable(error)


class TestWithRetry:
    """Tests for the retry loop."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self):
        """Should return without waiting when the first attempt succeeds."""
        sleep = FakeSleep()
        attempt = scripted({"ok": True})

        result = await with_retry(attempt, RetryPolicy(max_retries=3), sleep=sleep)

        assert result == {"ok": True}
        assert len(attempt.calls) == 1
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_recovers_after_server_errors(self):
        """Should retry 503, 503 then return the 200 result after two waits."""
        sleep = FakeSleep()
        attempt = scripted(
            ServerError("unavailable", status_code=503),
            ServerError("unavailable", status_code=503),
            {"ok": True},
        )

        result = await with_retry(
            attempt,
            RetryPolicy(max_retries=3, initial_delay_ms=100),
            sleep=sleep,
            rng=random.Random(0),
        )

        assert result == {"ok": True}
        assert len(attempt.calls) == 3
        assert len(sleep.calls) == 2
        assert 0.1 <= sleep.calls[0] < 0.15
        assert sleep.calls[1] >= sleep.calls[0]

    @pytest.mark.parametrize("max_retries", [0, 1, 3, 5])
    @pytest.mark.asyncio
    async def test_exhausts_retries(self, max_retries):
        """Should make exactly max_retries + 1 attempts then raise the last error."""
        sleep = FakeSleep()
        errors = [ServerError(f"fail {i}") for i in range(max_retries + 1)]
        attempt = scripted(*errors)

        with pytest.raises(ServerError) as exc_info:
            await with_retry(attempt, RetryPolicy(max_retries=max_retries), sleep=sleep)

        assert exc_info.value is errors[-1]
        assert len(attempt.calls) == max_retries + 1
        assert len(sleep.calls) == max_retries

    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("bad"),
            AuthenticationError("no key"),
            TierAccessError("upgrade"),
            NotFoundError("missing"),
            QuotaExceededError("quota"),
        ],
    )
    @pytest.mark.asyncio
    async def test_non_retryable_single_attempt(self, error):
        """Should raise non-retryable errors after one attempt."""
        sleep = FakeSleep()
        attempt = scripted(error, {"ok": True})

        with pytest.raises(type(error)):
            await with_retry(attempt, RetryPolicy(max_retries=3), sleep=sleep)

        assert len(attempt.calls) == 1
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_rate_limit_honors_retry_after(self):
        """Should wait the server's retry-after instead of the backoff delay."""
        sleep = FakeSleep()
        attempt = scripted(RateLimitError("slow down", retry_after=5), {"ok": True})

        result = await with_retry(
            attempt, RetryPolicy(max_retries=3, initial_delay_ms=100), sleep=sleep
        )

        assert result == {"ok": True}
        assert sleep.calls == [5.0]

    @pytest.mark.asyncio
    async def test_rate_limit_retry_after_is_capped(self):
        """Should never wait longer than max_delay_ms for a retry-after hint."""
        sleep = FakeSleep()
        attempt = scripted(RateLimitError("slow down", retry_after=3600), {"ok": True})

        result = await with_retry(attempt, RetryPolicy(max_retries=3), sleep=sleep)

        assert result == {"ok": True}
        assert sleep.calls == [30.0]

    @pytest.mark.asyncio
    async def test_rate_limit_without_hint_uses_backoff(self):
        """Should fall back to backoff when retry-after is missing."""
        sleep = FakeSleep()
        attempt = scripted(RateLimitError("slow down"), {"ok": True})

        await with_retry(
            attempt, RetryPolicy(max_retries=3, initial_delay_ms=100), sleep=sleep
        )

        assert 0.1 <= sleep.calls[0] < 0.15

    @pytest.mark.asyncio
    async def test_on_retry_receives_state(self):
        """Should report attempt number, error and delay before each wait."""
        sleep = FakeSleep()
        first = NetworkError("reset")
        second = RequestTimeoutError("timed out")
        attempt = scripted(first, second, "done")
        seen = []

        await with_retry(
            attempt,
            RetryPolicy(max_retries=3, initial_delay_ms=10),
            sleep=sleep,
            on_retry=lambda state: seen.append(
                (state.attempt, state.last_error, state.next_delay_ms)
            ),
        )

        assert [s[0] for s in seen] == [1, 2]
        assert seen[0][1] is first
        assert seen[1][1] is second
        assert [s[2] / 1000 for s in seen] == sleep.calls

    @pytest.mark.asyncio
    async def test_foreign_exceptions_propagate(self):
        """Should not retry exceptions that are not Tuteliq errors."""
        sleep = FakeSleep()
        attempt = scripted(KeyError("bug"), {"ok": True})

        with pytest.raises(KeyError):
            await with_retry(attempt, RetryPolicy(max_retries=3), sleep=sleep)

        assert len(attempt.calls) == 1

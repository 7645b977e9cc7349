"""Tests for rate limiter functionality."""

import pytest
from datetime import datetime

from jira_sync.core.rate_limiter import BackoffConfig, RateLimiter
from tests.factories import FakeClock


def _limiter(clock: FakeClock, **backoff) -> RateLimiter:
    config = BackoffConfig(randomization_factor=0, **backoff)
    return RateLimiter(delay_ms=1000, backoff=config, sleep=clock.sleep, clock=clock)


@pytest.mark.asyncio
async def test_rate_limiter_delay():
    """Test that rate limiter applies the configured delay."""
    clock = FakeClock()
    rate_limiter = _limiter(clock)

    await rate_limiter.delay()

    assert clock.sleeps == [1.0]


@pytest.mark.asyncio
async def test_rate_limiter_no_delay():
    """Test rate limiter with zero delay."""
    rate_limiter = RateLimiter(delay_ms=0)

    start_time = datetime.utcnow()
    await rate_limiter.delay()
    end_time = datetime.utcnow()

    elapsed_ms = (end_time - start_time).total_seconds() * 1000
    assert elapsed_ms < 50


@pytest.mark.asyncio
async def test_rate_limiter_execute_success():
    """Test successful operation execution."""
    clock = FakeClock()
    rate_limiter = _limiter(clock)

    async def operation():
        return "success"

    result = await rate_limiter.execute_with_retry(operation, "test")
    assert result == "success"
    assert rate_limiter.operation_count == 1
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_rate_limiter_retries_with_exponential_backoff():
    """Failures are retried after 0.5s, 1s, 2s... until the operation succeeds."""
    clock = FakeClock()
    rate_limiter = _limiter(clock)
    call_count = 0

    async def operation():
        nonlocal call_count
        call_count += 1
        if call_count < 4:
            raise RuntimeError("503 Service Unavailable")
        return "success"

    result = await rate_limiter.execute_with_retry(operation, "test")

    assert result == "success"
    assert call_count == 4
    assert clock.sleeps == [0.5, 1.0, 2.0]
    assert rate_limiter.retry_count == 3


@pytest.mark.asyncio
async def test_rate_limiter_gives_up_after_elapsed_budget():
    """The last error is raised once the next wait would exceed max_elapsed_time."""
    clock = FakeClock()
    rate_limiter = _limiter(clock)
    call_count = 0

    async def operation():
        nonlocal call_count
        call_count += 1
        raise RuntimeError(f"failure {call_count}")

    with pytest.raises(RuntimeError, match="failure 6"):
        await rate_limiter.execute_with_retry(operation, "test")

    # 0.5 + 1 + 2 + 4 + 8 = 15.5s elapsed; waiting another 16s would pass 30s
    assert clock.sleeps == [0.5, 1.0, 2.0, 4.0, 8.0]
    assert call_count == 6
    assert clock.now <= 30.0


@pytest.mark.asyncio
async def test_rate_limiter_does_not_retry_non_retryable_errors():
    clock = FakeClock()
    rate_limiter = _limiter(clock)
    call_count = 0

    async def operation():
        nonlocal call_count
        call_count += 1
        raise KeyError("bad")

    with pytest.raises(KeyError):
        await rate_limiter.execute_with_retry(
            operation, "test", is_retryable=lambda e: isinstance(e, RuntimeError)
        )

    assert call_count == 1
    assert clock.sleeps == []


def test_backoff_intervals_are_capped():
    config = BackoffConfig(initial_interval=10, multiplier=4, max_interval=60, randomization_factor=0)
    intervals = config.intervals()
    assert [next(intervals) for _ in range(4)] == [10, 40, 60, 60]


def test_backoff_intervals_are_jittered_within_bounds():
    config = BackoffConfig(initial_interval=1.0, randomization_factor=0.5)
    first = next(config.intervals())
    assert 0.5 <= first <= 1.5


def test_backoff_config_from_settings():
    class FakeSettings:
        jira_backoff_initial_ms = 250
        jira_backoff_multiplier = 3.0
        jira_backoff_max_elapsed_seconds = 10.0

    config = BackoffConfig.from_settings(FakeSettings())

    assert config.initial_interval == 0.25
    assert config.multiplier == 3.0
    assert config.max_elapsed_time == 10.0


def test_rate_limiter_metrics():
    """Test rate limiter metrics tracking."""
    rate_limiter = RateLimiter(delay_ms=10)

    metrics = rate_limiter.get_metrics()
    assert metrics["operation_count"] == 0
    assert metrics["duration_seconds"] == 0

    rate_limiter.start_tracking()
    rate_limiter.record_operation()
    rate_limiter.record_operation()

    metrics = rate_limiter.get_metrics()
    assert metrics["operation_count"] == 2
    assert metrics["retry_count"] == 0
    assert metrics["duration_seconds"] >= 0

import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock

from doggocli.domain.events.api_events import CircuitHalfOpened, CircuitOpened, CircuitReset
from doggocli.infrastructure.resilience.api_retry import is_transient_response
from doggocli.infrastructure.resilience.circuit_breaker import CircuitBreaker, CircuitState
from doggocli.infrastructure.resilience.errors import CircuitOpenError

@pytest.fixture
def breaker(fake_clock, events) -> CircuitBreaker:
    return CircuitBreaker(
        failure_threshold=5,
        break_duration_s=30.0,
        failure_exceptions=(ConnectionError,),
        is_failure_result=is_transient_response,
        clock=fake_clock,
        event_handler=events.append,
    )

async def fail_times(breaker: CircuitBreaker, n: int) -> None:
    failing = AsyncMock(side_effect=ConnectionError("down"))
    for _ in range(n):
        with pytest.raises(ConnectionError):
            await breaker.call(failing)

def test_starts_closed(breaker):
    assert breaker.state == CircuitState.CLOSED
    assert breaker.consecutive_failures == 0
    assert breaker.allows_retry() is True

def test_opens_after_threshold_and_rejects_without_calling(breaker):
    """Test that five consecutive failures open the circuit and the sixth call never runs."""
    async def scenario():
        await fail_times(breaker, 5)
        assert breaker.state == CircuitState.OPEN
        assert breaker.allows_retry() is False

        func = AsyncMock(return_value="ok")
        with pytest.raises(CircuitOpenError) as exc_info:
            await breaker.call(func)
        func.assert_not_awaited()
        assert exc_info.value.retry_after_s == pytest.approx(30.0)

    asyncio.run(scenario())

def test_stays_closed_below_threshold(breaker):
    async def scenario():
        await fail_times(breaker, 4)
        assert breaker.state == CircuitState.CLOSED
        assert await breaker.call(AsyncMock(return_value="ok")) == "ok"

    asyncio.run(scenario())

def test_success_resets_consecutive_count(breaker):
    """Test that failures must be consecutive: a success in between starts the count over."""
    async def scenario():
        await fail_times(breaker, 4)
        await breaker.call(AsyncMock(return_value="ok"))
        assert breaker.consecutive_failures == 0
        await fail_times(breaker, 4)
        assert breaker.state == CircuitState.CLOSED

    asyncio.run(scenario())

def test_half_open_trial_success_closes(breaker, fake_clock):
    async def scenario():
        await fail_times(breaker, 5)
        fake_clock.advance(29)
        with pytest.raises(CircuitOpenError):
            await breaker.call(AsyncMock(return_value="ok"))

        fake_clock.advance(1)
        assert breaker.state == CircuitState.HALF_OPEN
        assert await breaker.call(AsyncMock(return_value="ok")) == "ok"
        assert breaker.state == CircuitState.CLOSED
        assert breaker.consecutive_failures == 0

    asyncio.run(scenario())

def test_half_open_trial_failure_reopens_and_restarts_timer(breaker, fake_clock):
    async def scenario():
        await fail_times(breaker, 5)
        fake_clock.advance(30)
        await fail_times(breaker, 1)
        assert breaker.state == CircuitState.OPEN

        fake_clock.advance(15)
        with pytest.raises(CircuitOpenError) as exc_info:
            await breaker.call(AsyncMock(return_value="ok"))
        assert exc_info.value.retry_after_s == pytest.approx(15.0)

        fake_clock.advance(15)
        assert await breaker.call(AsyncMock(return_value="ok")) == "ok"

    asyncio.run(scenario())

def test_only_one_trial_admitted_while_half_open(breaker, fake_clock):
    """Test that a caller arriving while the trial is in flight is rejected."""
    async def scenario():
        await fail_times(breaker, 5)
        fake_clock.advance(30)

        release = asyncio.Event()

        async def slow_trial():
            await release.wait()
            return "trial ok"

        trial = asyncio.create_task(breaker.call(slow_trial))
        await asyncio.sleep(0)

        sibling = AsyncMock(return_value="ok")
        with pytest.raises(CircuitOpenError):
            await breaker.call(sibling)
        sibling.assert_not_awaited()

        release.set()
        assert await trial == "trial ok"
        assert breaker.state == CircuitState.CLOSED

    asyncio.run(scenario())

def test_failure_result_counts_as_failure(breaker):
    async def scenario():
        unavailable = AsyncMock(return_value=httpx.Response(503))
        for _ in range(5):
            response = await breaker.call(unavailable)
            assert response.status_code == 503
        assert breaker.state == CircuitState.OPEN

    asyncio.run(scenario())

def test_client_error_result_counts_as_success(breaker):
    async def scenario():
        await fail_times(breaker, 4)
        await breaker.call(AsyncMock(return_value=httpx.Response(404)))
        assert breaker.consecutive_failures == 0

    asyncio.run(scenario())

def test_unlisted_exceptions_do_not_count(breaker):
    async def scenario():
        buggy = AsyncMock(side_effect=ValueError("bad payload"))
        for _ in range(10):
            with pytest.raises(ValueError):
                await breaker.call(buggy)
        assert breaker.consecutive_failures == 0
        assert breaker.state == CircuitState.CLOSED

    asyncio.run(scenario())

def test_late_success_does_not_close_an_open_circuit(breaker):
    """Test that a call admitted before the circuit opened cannot close it by succeeding late."""
    async def scenario():
        release = asyncio.Event()

        async def slow_success():
            await release.wait()
            return "late"

        straggler = asyncio.create_task(breaker.call(slow_success))
        await asyncio.sleep(0)
        await fail_times(breaker, 5)
        assert breaker.state == CircuitState.OPEN

        release.set()
        assert await straggler == "late"
        assert breaker.state == CircuitState.OPEN

    asyncio.run(scenario())

def test_transition_events(breaker, fake_clock, events):
    async def scenario():
        await fail_times(breaker, 5)
        fake_clock.advance(30)
        await breaker.call(AsyncMock(return_value="ok"))

    asyncio.run(scenario())

    kinds = [type(e) for e in events]
    assert kinds == [CircuitOpened, CircuitHalfOpened, CircuitReset]
    assert events[0].consecutive_failures == 5
    assert events[0].break_duration_seconds == 30.0
    assert "ConnectionError" in events[0].cause

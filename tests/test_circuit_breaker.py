import asyncio

import pytest
from unittest.mock import AsyncMock, Mock

from error_handling.circuit_breaker import CircuitBreaker


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def circuit_breaker(clock):
    """Create a circuit breaker for testing."""
    return CircuitBreaker(
        failure_threshold=3,
        recovery_timeout=1,
        half_open_success_threshold=2,
        clock=clock,
    )


def test_circuit_breaker_functionality(circuit_breaker, clock):
    """Test circuit breaker protecting against cascading failures."""
    # Create a function that fails
    failing_func = Mock(side_effect=Exception("Test failure"))

    # Wrap with circuit breaker
    protected_func = circuit_breaker(failing_func)

    # Circuit should initially be closed
    assert circuit_breaker.state == CircuitBreaker.STATE_CLOSED

    # Call until circuit opens
    for _ in range(3):  # Failure threshold is 3
        with pytest.raises(Exception):
            protected_func()

    # Circuit should now be open
    assert circuit_breaker.state == CircuitBreaker.STATE_OPEN

    # Further calls should raise CircuitBreakerError without calling the function
    with pytest.raises(CircuitBreaker.CircuitBreakerError):
        protected_func()

    # Original function should not have been called again
    assert failing_func.call_count == 3

    # Recovery timeout passes
    clock.now += 1.1

    # Fix the function to start working again
    failing_func.side_effect = None
    failing_func.return_value = "success"

    # First success in half-open state
    assert protected_func() == "success"
    assert circuit_breaker.state == CircuitBreaker.STATE_HALF_OPEN

    # Need one more success to close the circuit
    assert protected_func() == "success"

    # Circuit should now be closed again
    assert circuit_breaker.state == CircuitBreaker.STATE_CLOSED


def test_failed_probe_reopens_circuit(circuit_breaker, clock):
    failing_func = Mock(side_effect=ValueError("still down"))

    for _ in range(3):
        with pytest.raises(ValueError):
            circuit_breaker.call(failing_func)

    clock.now += 2
    with pytest.raises(ValueError):
        circuit_breaker.call(failing_func)

    assert circuit_breaker.state == CircuitBreaker.STATE_OPEN
    with pytest.raises(CircuitBreaker.CircuitBreakerError):
        circuit_breaker.call(failing_func)


def test_success_resets_failure_count(circuit_breaker):
    flaky = Mock(side_effect=[ValueError(), ValueError(), "ok", ValueError(), ValueError()])

    for _ in range(5):
        try:
            circuit_breaker.call(flaky)
        except ValueError:
            pass

    # never three failures in a row
    assert circuit_breaker.state == CircuitBreaker.STATE_CLOSED
    assert circuit_breaker.get_state()['failure_count'] == 2


def test_async_calls(circuit_breaker):
    failing = AsyncMock(side_effect=ConnectionError("down"))

    @circuit_breaker
    async def lookup():
        return await failing()

    loop = asyncio.new_event_loop()
    try:
        for _ in range(3):
            with pytest.raises(ConnectionError):
                loop.run_until_complete(lookup())
        with pytest.raises(CircuitBreaker.CircuitBreakerError):
            loop.run_until_complete(lookup())
    finally:
        loop.close()

    assert failing.await_count == 3


def test_reset(circuit_breaker):
    circuit_breaker.state = CircuitBreaker.STATE_OPEN
    circuit_breaker.failure_count = 10

    circuit_breaker.reset()

    assert circuit_breaker.get_state() == {
        'state': CircuitBreaker.STATE_CLOSED,
        'failure_count': 0,
        'success_count': 0,
        'last_failure_time': 0.0,
    }

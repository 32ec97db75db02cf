"""Circuit breaker guarding calls to flaky external services."""
import functools
import inspect
import threading
import time
from typing import Any, Awaitable, Callable, Dict, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar('T')


def _func_name(func) -> str:
    return getattr(func, '__name__', type(func).__name__)


class CircuitBreaker:
    """
    Stops calling a failing service once it failed too often in a row.

    Price feeds and similar enrichment services are called once per record
    being reduced; when such a service is down every call would wait for
    its own timeout. The breaker fails those calls fast instead and lets a
    probe call through once the recovery timeout has passed.

    Circuit states:
    - CLOSED: Normal operation, calls pass through to the service
    - OPEN: Service calls are rejected with CircuitBreakerError
    - HALF-OPEN: Calls pass through to probe whether the service recovered
    """

    STATE_CLOSED = 'closed'
    STATE_OPEN = 'open'
    STATE_HALF_OPEN = 'half-open'

    class CircuitBreakerError(Exception):
        """Exception raised when a circuit is open."""
        pass

    def __init__(self, failure_threshold=5, recovery_timeout=60,
                 half_open_success_threshold=1, name='service',
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize a new Circuit Breaker.

        Args:
            failure_threshold: Number of consecutive failures before opening the circuit
            recovery_timeout: Time in seconds to wait before probing the service again
            half_open_success_threshold: Number of successful probes needed to close circuit
            name: Name of the guarded service used in log events
            clock: Monotonic time source
        """
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_success_threshold = half_open_success_threshold
        self.name = name
        self._clock = clock

        self.state = self.STATE_CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time = 0.0
        self._lock = threading.RLock()

    def __call__(self, func):
        """Use as a decorator on sync or async functions that might fail."""
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                return await self.call_async(func, *args, **kwargs)
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return self.call(func, *args, **kwargs)
        return wrapper

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Call ``func`` with circuit breaker protection.

        Raises:
            CircuitBreakerError: If the circuit is open
            Exception: Any exception raised by the function
        """
        self._before_call(func)
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._record_failure(func, e)
            raise
        self._record_success(func)
        return result

    async def call_async(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await ``func`` with circuit breaker protection."""
        self._before_call(func)
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            self._record_failure(func, e)
            raise
        self._record_success(func)
        return result

    def _before_call(self, func) -> None:
        with self._lock:
            if self.state != self.STATE_OPEN:
                return

            elapsed = self._clock() - self.last_failure_time
            if elapsed >= self.recovery_timeout:
                logger.info("circuit_breaker_half_open",
                            service=self.name,
                            func=_func_name(func),
                            recovery_timeout=self.recovery_timeout)
                self.state = self.STATE_HALF_OPEN
                self.success_count = 0
                return

            logger.warning("circuit_breaker_open",
                           service=self.name,
                           func=_func_name(func),
                           seconds_remaining=self.recovery_timeout - elapsed)
            raise self.CircuitBreakerError(
                f"Circuit is open for {self.name}, too many failures."
            )

    def _record_success(self, func) -> None:
        with self._lock:
            if self.state == self.STATE_HALF_OPEN:
                self.success_count += 1
                if self.success_count >= self.half_open_success_threshold:
                    logger.info("circuit_breaker_closed",
                                service=self.name,
                                func=_func_name(func),
                                success_count=self.success_count)
                    self.state = self.STATE_CLOSED
                    self.failure_count = 0
            elif self.state == self.STATE_CLOSED:
                self.failure_count = 0

    def _record_failure(self, func, error: Exception) -> None:
        with self._lock:
            self.failure_count += 1
            self.last_failure_time = self._clock()

            if self.state == self.STATE_CLOSED and self.failure_count >= self.failure_threshold:
                logger.warning("circuit_breaker_tripped",
                               service=self.name,
                               func=_func_name(func),
                               failure_count=self.failure_count,
                               exception=str(error))
                self.state = self.STATE_OPEN
            elif self.state == self.STATE_HALF_OPEN:
                logger.warning("circuit_breaker_recovery_failed",
                               service=self.name,
                               func=_func_name(func),
                               exception=str(error))
                self.state = self.STATE_OPEN

    def reset(self):
        """Reset the circuit breaker to closed state."""
        with self._lock:
            self.state = self.STATE_CLOSED
            self.failure_count = 0
            self.success_count = 0
            self.last_failure_time = 0.0
            logger.info("circuit_breaker_reset", service=self.name)

    def get_state(self) -> Dict[str, Any]:
        """Get the current state of the circuit breaker."""
        with self._lock:
            return {
                'state': self.state,
                'failure_count': self.failure_count,
                'success_count': self.success_count,
                'last_failure_time': self.last_failure_time
            }

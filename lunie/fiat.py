"""
Fiat valuation interfaces.

Fiat values come from an external price feed. Reducers only depend on the
protocols below; ``GuardedFiatValueAPI`` puts a circuit breaker in front of
a feed so an outage doesn't stall every reducer waiting on it.
"""
from typing import Any, Awaitable, Mapping, Optional, Protocol, Sequence

from error_handling.circuit_breaker import CircuitBreaker

from .config import Settings
from .core.types import Coin


class FiatValueAPI(Protocol):
    """Price feed converting coins into a fiat currency."""

    async def calculate_fiat_values(self, coins: Sequence[Coin], fiat_currency: str) -> Mapping[str, Any]:
        """Get the fiat value of each coin keyed by denomination."""
        ...


class FiatValueCalculator(Protocol):
    """Values a single coin in a fiat currency."""

    def __call__(self, coin: Coin, fiat_currency: str) -> Awaitable[Any]:
        ...


def fiat_value_calculator(api: FiatValueAPI) -> FiatValueCalculator:
    """Adapt a ``FiatValueAPI`` to value one coin at a time."""
    async def calculate_fiat_value(coin: Coin, fiat_currency: str) -> Any:
        fiat_values = await api.calculate_fiat_values([coin], fiat_currency)
        return fiat_values.get(coin.denom)
    return calculate_fiat_value


class GuardedFiatValueAPI:
    """A ``FiatValueAPI`` whose calls go through a circuit breaker."""

    def __init__(self, api: FiatValueAPI, breaker: Optional[CircuitBreaker] = None):
        self.api = api
        self.breaker = breaker or CircuitBreaker(name="fiat_value_api")

    @classmethod
    def from_settings(cls, api: FiatValueAPI, settings: Settings) -> "GuardedFiatValueAPI":
        return cls(api, CircuitBreaker(
            failure_threshold=settings.fiat_failure_threshold,
            recovery_timeout=settings.fiat_recovery_timeout,
            name="fiat_value_api",
        ))

    async def calculate_fiat_values(self, coins: Sequence[Coin], fiat_currency: str) -> Mapping[str, Any]:
        return await self.breaker.call_async(self.api.calculate_fiat_values, coins, fiat_currency)

"""
Tests for the balance reducers and the guarded price feed
"""
import unittest
import asyncio
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from error_handling.circuit_breaker import CircuitBreaker
from lunie.config import Settings
from lunie.core.types import BalanceType, Coin
from lunie.errors import UnsupportedTokenError
from lunie.fiat import GuardedFiatValueAPI, fiat_value_calculator
from lunie.reducers import balance_reducer, balance_v2_reducer, fee_denom, total_stake_fiat_value_reducer


class DoublingFiatAPI:
    """Price feed valuing every token at 2 units of fiat."""

    def __init__(self):
        self.requests = []

    async def calculate_fiat_values(self, coins, fiat_currency):
        self.requests.append([coin.denom for coin in coins])
        return {coin.denom: coin.amount * 2 for coin in coins}


class FailingFiatAPI:
    async def calculate_fiat_values(self, coins, fiat_currency):
        raise ConnectionError("price feed unavailable")


def test_balance_reducer_attaches_gas_price():
    balance = balance_reducer(
        Coin(denom="ATOM", amount=Decimal("1.5")),
        [{"denom": "umuon", "price": "1000"}, {"denom": "uatom", "price": "25000"}],
        fiat_value=Decimal(3),
    )
    assert balance.id == balance.denom == "ATOM"
    assert balance.amount == Decimal("1.5")
    assert balance.gas_price == Decimal("0.025")
    assert balance.fiat_value == Decimal(3)


def test_balance_reducer_without_gas_prices():
    assert balance_reducer(Coin(denom="ATOM", amount=1), None).gas_price is None


def test_balance_reducer_rejects_tokens_without_gas_price():
    with pytest.raises(UnsupportedTokenError):
        balance_reducer(Coin(denom="KAVA", amount=1), [{"denom": "uatom", "price": "25000"}])


@pytest.mark.parametrize("balances,expected", [
    ([Coin(denom="eCHF", amount=1), Coin(denom="NGM", amount=1)], "NGM"),
    ([Coin(denom="eCHF", amount=1), Coin(denom="NGM", amount=0)], "eCHF"),
    ([Coin(denom="eCHF", amount=0), Coin(denom="eEUR", amount=2)], "eEUR"),
    ([], "NGM"),
])
def test_fee_denom(balances, expected):
    assert fee_denom(balances, "NGM") == expected


class TestBalanceV2Reducer(unittest.TestCase):
    """Test cases for balances including chain-locked stake."""

    def setUp(self):
        """Set up test environment."""
        self.delegations = [SimpleNamespace(amount=Decimal(5)), SimpleNamespace(amount=Decimal("1.5"))]
        self.undelegations = [SimpleNamespace(amount="2.500000")]

        # Set up event loop
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

    def tearDown(self):
        """Clean up after tests."""
        self.loop.close()

    def reduce(self, coin, fiat_value_api):
        return self.loop.run_until_complete(balance_v2_reducer(
            coin, "ATOM", self.delegations, self.undelegations, fiat_value_api, "USD"
        ))

    def test_staking_denom_includes_locked_tokens(self):
        """Test the staking balance adds delegated and undelegating tokens."""
        api = DoublingFiatAPI()
        balance = self.reduce(Coin(denom="ATOM", amount=Decimal(10)), api)

        self.assertEqual(balance.type, BalanceType.STAKE)
        self.assertEqual(balance.total, Decimal(19))
        self.assertEqual(balance.available, Decimal(10))
        self.assertEqual(balance.fiat_value, Decimal(38))
        self.assertEqual(balance.available_fiat_value, Decimal(20))
        self.assertEqual(len(api.requests), 2)

    def test_other_denoms_are_available_only(self):
        """Test currencies can't be staked so their total is what is available."""
        balance = self.reduce(Coin(denom="eCHF", amount=Decimal(4)), DoublingFiatAPI())

        self.assertEqual(balance.type, BalanceType.CURRENCY)
        self.assertEqual(balance.total, Decimal(4))
        self.assertEqual(balance.fiat_value, Decimal(8))
        self.assertEqual(balance.available_fiat_value, Decimal(8))

    def test_failed_fiat_lookup_leaves_fiat_values_empty(self):
        """Test a price feed outage doesn't fail the balance."""
        balance = self.reduce(Coin(denom="ATOM", amount=Decimal(10)), FailingFiatAPI())

        self.assertEqual(balance.total, Decimal(19))
        self.assertIsNone(balance.fiat_value)
        self.assertIsNone(balance.available_fiat_value)

    def test_without_price_feed(self):
        """Test fiat values are skipped without a price feed."""
        balance = self.reduce(Coin(denom="ATOM", amount=Decimal(10)), None)
        self.assertIsNone(balance.fiat_value)

    def test_total_stake_fiat_value(self):
        """Test the fiat value of the total stake."""
        value = self.loop.run_until_complete(
            total_stake_fiat_value_reducer(DoublingFiatAPI(), "USD", "12.5", "ATOM")
        )
        self.assertEqual(value, Decimal(25))

        with self.assertRaises(ConnectionError):
            self.loop.run_until_complete(
                total_stake_fiat_value_reducer(FailingFiatAPI(), "USD", "12.5", "ATOM")
            )


class TestGuardedFiatValueAPI(unittest.TestCase):
    """Test cases for the circuit breaker in front of the price feed."""

    def setUp(self):
        """Set up test environment."""
        self.now = 0.0
        self.breaker = CircuitBreaker(
            failure_threshold=2,
            recovery_timeout=30,
            name="test_feed",
            clock=lambda: self.now,
        )
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

    def tearDown(self):
        """Clean up after tests."""
        self.loop.close()

    def test_open_circuit_fails_fast(self):
        """Test lookups stop reaching a failing feed once the circuit is open."""
        feed = AsyncMock(side_effect=ConnectionError("down"))
        api = GuardedFiatValueAPI(SimpleNamespace(calculate_fiat_values=feed), self.breaker)
        coins = [Coin(denom="ATOM", amount=1)]

        for _ in range(2):
            with self.assertRaises(ConnectionError):
                self.loop.run_until_complete(api.calculate_fiat_values(coins, "USD"))

        with self.assertRaises(CircuitBreaker.CircuitBreakerError):
            self.loop.run_until_complete(api.calculate_fiat_values(coins, "USD"))
        self.assertEqual(feed.await_count, 2)

        # the feed recovered by the time the circuit lets a probe through
        self.now = 31.0
        feed.side_effect = None
        feed.return_value = {"ATOM": Decimal(7)}
        values = self.loop.run_until_complete(api.calculate_fiat_values(coins, "USD"))
        self.assertEqual(values, {"ATOM": Decimal(7)})
        self.assertEqual(self.breaker.state, CircuitBreaker.STATE_CLOSED)

    def test_balances_survive_open_circuit(self):
        """Test reducers treat an open circuit like any other failed lookup."""
        self.breaker.state = CircuitBreaker.STATE_OPEN
        api = GuardedFiatValueAPI(DoublingFiatAPI(), self.breaker)

        balance = self.loop.run_until_complete(balance_v2_reducer(
            Coin(denom="ATOM", amount=Decimal(1)), "ATOM", [], [], api, "USD"
        ))
        self.assertIsNone(balance.fiat_value)

    def test_breaker_from_settings(self):
        """Test the breaker thresholds come from the settings."""
        settings = Settings(_env_file=None, fiat_failure_threshold=3, fiat_recovery_timeout=12.5)
        api = GuardedFiatValueAPI.from_settings(DoublingFiatAPI(), settings)

        self.assertEqual(api.breaker.failure_threshold, 3)
        self.assertEqual(api.breaker.recovery_timeout, 12.5)
        self.assertEqual(api.breaker.name, "fiat_value_api")

    def test_fiat_value_calculator(self):
        """Test valuing single coins through a price feed."""
        calculate = fiat_value_calculator(DoublingFiatAPI())
        value = self.loop.run_until_complete(calculate(Coin(denom="ATOM", amount=Decimal(3)), "USD"))
        self.assertEqual(value, Decimal(6))


if __name__ == '__main__':
    pytest.main([__file__])

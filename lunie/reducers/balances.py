"""
Balance reducers.

For the staking denomination the total balance a user sees includes what
is delegated and what is still undelegating, even though the chain locks
those tokens.
"""
import asyncio
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

import structlog

from monitoring.persistence_metrics import FIAT_LOOKUP_FAILURES

from ..core.types import Balance, BalanceType, BalanceView, Coin
from ..fiat import FiatValueAPI
from ..numbers import Numeric, to_decimal
from .common import denom_lookup, gas_price_reducer

logger = structlog.get_logger()


def balance_reducer(
    coin: Coin,
    gas_prices: Optional[Sequence[Mapping[str, Any]]],
    fiat_value: Any = None,
) -> Balance:
    """
    Attach fiat value and gas price to a liquid balance.

    Raises:
        UnsupportedTokenError: If gas prices are known but none for the coin
    """
    gas_price = None
    if gas_prices:
        match = next((price for price in gas_prices if denom_lookup(price["denom"]) == coin.denom), None)
        gas_price = gas_price_reducer(match).price

    return Balance(
        id=coin.denom,
        denom=coin.denom,
        amount=coin.amount,
        fiat_value=fiat_value,
        gas_price=gas_price,
    )


def _sum_amounts(records: Iterable[Any]) -> Decimal:
    return sum((to_decimal(record.amount) for record in records), Decimal(0))


async def _fiat_value(api: FiatValueAPI, coin: Coin, fiat_currency: str) -> Any:
    try:
        fiat_values = await api.calculate_fiat_values([coin], fiat_currency)
    except Exception as e:
        FIAT_LOOKUP_FAILURES.labels(reducer="balance").inc()
        logger.warning("balance_fiat_lookup_failed", denom=coin.denom, error=str(e))
        return None
    return fiat_values.get(coin.denom)


async def balance_v2_reducer(
    coin: Coin,
    staking_denom: str,
    delegations: Sequence[Any],
    undelegations: Sequence[Any],
    fiat_value_api: Optional[FiatValueAPI],
    fiat_currency: str,
) -> BalanceView:
    """
    Summarize the balance of one denomination.

    Args:
        coin: Liquid balance in display units
        staking_denom: Display denomination used for staking
        delegations: Delegations of the account
        undelegations: Undelegations of the account still in progress
        fiat_value_api: Price feed, None to skip fiat values
        fiat_currency: Currency to value the balance in
    """
    is_staking_denom = coin.denom == staking_denom
    total = coin.amount
    if is_staking_denom:
        total = coin.amount + _sum_amounts(delegations) + _sum_amounts(undelegations)

    fiat_value = available_fiat_value = None
    if fiat_value_api is not None:
        fiat_value, available_fiat_value = await asyncio.gather(
            _fiat_value(fiat_value_api, Coin(denom=coin.denom, amount=total), fiat_currency),
            _fiat_value(fiat_value_api, coin, fiat_currency),
        )

    return BalanceView(
        id=coin.denom,
        type=BalanceType.STAKE if is_staking_denom else BalanceType.CURRENCY,
        total=total,
        denom=coin.denom,
        fiat_value=fiat_value,
        available=coin.amount,
        available_fiat_value=available_fiat_value,
    )


async def total_stake_fiat_value_reducer(
    fiat_value_api: FiatValueAPI,
    fiat_currency: str,
    total_stake: Numeric,
    staking_denom: str,
) -> Any:
    fiat_values = await fiat_value_api.calculate_fiat_values(
        [Coin(denom=staking_denom, amount=to_decimal(total_stake))],
        fiat_currency,
    )
    return fiat_values.get(staking_denom)


def fee_denom(balances: Sequence[Any], staking_denom: str) -> str:
    """
    Pick the denomination to pay fees with.

    The staking denomination is preferred; otherwise the first denomination
    with an available balance.
    """
    funded = [balance for balance in balances if to_decimal(balance.amount) > 0]
    if any(balance.denom == staking_denom for balance in funded):
        return staking_denom
    if funded:
        return funded[0].denom
    return staking_denom

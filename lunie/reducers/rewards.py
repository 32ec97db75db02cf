"""
Reward reducers.

Rewards are reported per validator and per denomination. On multi-asset
chains one validator pays out several denominations, each with its own
decimal precision.
"""
import asyncio
import re
from collections import defaultdict
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence

import structlog

from monitoring.persistence_metrics import FIAT_LOOKUP_FAILURES, REDUCE_FAILURES

from ..config import NetworkConfig, get_coin_lookup
from ..constants import DEFAULT_CONVERSION_FACTOR, DUST_THRESHOLD
from ..core.types import Coin, Reward, TransactionData, Validator
from ..fiat import FiatValueCalculator
from ..numbers import fix_decimals_and_round_up, to_decimal
from .common import CoinReducer, coin_reducer, denom_lookup

logger = structlog.get_logger()

_DENOM = re.compile(r"[a-z]+", re.IGNORECASE)
_AMOUNT = re.compile(r"[0-9]+")

CLAIM_REWARDS_TX = "ClaimRewardsTx"


def reward_coin_reducer(reward: str, network: NetworkConfig) -> List[Coin]:
    """
    Parse rewards as found in Tendermint events.

    Events carry the amount as one string, ``"15000umuon"``, or on multi
    denom networks ``"15000ungm,100000uchf,110000ueur"``. Each amount is
    converted with the conversion factor of its own denomination.
    """
    coins = []
    for denom_reward in reward.split(","):
        denom_match = _DENOM.search(denom_reward)
        amount_match = _AMOUNT.search(denom_reward)
        if not denom_match or not amount_match:
            logger.warning("reward_not_parsable", reward=denom_reward)
            continue

        denom = denom_lookup(denom_match.group(0), network)
        coin_lookup = get_coin_lookup(network, denom, "view_denom")
        if coin_lookup is None:
            logger.warning("coin_lookup_missing", denom=denom, network=network.id)
            factor = DEFAULT_CONVERSION_FACTOR
        else:
            factor = coin_lookup.chain_to_view_conversion_factor

        coins.append(Coin(denom=denom, amount=to_decimal(amount_match.group(0)) * factor))
    return coins


async def _reduce_denom_reward(
    denom_reward: Mapping[str, Any],
    validator: Validator,
    fiat_currency: str,
    calculate_fiat_value: Optional[FiatValueCalculator],
    network: NetworkConfig,
    reduce_coin: CoinReducer,
) -> Optional[Reward]:
    try:
        coin_lookup = get_coin_lookup(network, denom_reward["denom"])
        coin = reduce_coin(denom_reward, coin_lookup, network)
    except (KeyError, ValueError) as e:
        REDUCE_FAILURES.labels(reducer="reward").inc()
        logger.warning("reward_not_reducible",
                       validator=validator.operator_address,
                       reward=dict(denom_reward),
                       error=str(e))
        return None

    if coin.amount < DUST_THRESHOLD:
        return None

    fiat_value = None
    if calculate_fiat_value is not None:
        try:
            fiat_value = await calculate_fiat_value(coin, fiat_currency)
        except Exception as e:
            FIAT_LOOKUP_FAILURES.labels(reducer="reward").inc()
            logger.warning("reward_fiat_lookup_failed",
                           validator=validator.operator_address,
                           denom=coin.denom,
                           error=str(e))
            return None

    return Reward(
        id=f"{validator.operator_address}_{coin.denom}_{fiat_currency}",
        denom=coin.denom,
        # TODO: round with the decimals of the denom's coin lookup once networks define them
        amount=format(fix_decimals_and_round_up(coin.amount), "f"),
        fiat_value=fiat_value,
        validator=validator,
    )


async def reward_reducer(
    rewards: Sequence[Mapping[str, Any]],
    validators_by_address: Mapping[str, Validator],
    fiat_currency: str,
    calculate_fiat_value: Optional[FiatValueCalculator],
    network: NetworkConfig,
    reduce_coin: CoinReducer = coin_reducer,
) -> List[Reward]:
    """
    Flatten per-validator rewards into one reward per validator and denom.

    Dust rewards and entries that can't be converted, like negative
    amounts, are dropped. Fiat values are looked up concurrently; a reward
    whose lookup fails is dropped without affecting the others.

    Args:
        rewards: Raw ``{validator_address, reward: [{denom, amount}]}`` entries
        validators_by_address: Reduced validators keyed by operator address
        fiat_currency: Currency to value rewards in
        calculate_fiat_value: Coin valuation, None to skip fiat values
        network: Network the rewards were paid on
        reduce_coin: Converter for the raw reward coins
    """
    pending = []
    for reward in rewards:
        validator = validators_by_address.get(reward.get("validator_address"))
        if validator is None:
            logger.debug("reward_validator_unknown", validator_address=reward.get("validator_address"))
            continue
        for denom_reward in reward.get("reward") or []:
            pending.append(_reduce_denom_reward(
                denom_reward, validator, fiat_currency, calculate_fiat_value, network, reduce_coin
            ))

    reduced = await asyncio.gather(*pending)
    return [reward for reward in reduced if reward is not None]


def total_rewards_by_denom(rewards: Iterable[Any]) -> List[Coin]:
    """Add up rewards of all validators per denomination."""
    totals = defaultdict(Decimal)
    for reward in rewards:
        totals[reward.denom] += to_decimal(reward.amount)
    return [Coin(denom=denom, amount=amount) for denom, amount in sorted(totals.items())]


def claim_rewards_transaction_data(total_rewards: Sequence[Coin]) -> TransactionData:
    return TransactionData(
        type=CLAIM_REWARDS_TX,
        amounts=list(total_rewards),
        display_amounts=list(total_rewards),
    )

"""
Reducers shared by all record types: denominations, coins, gas prices,
accounts and blocks.
"""
import json
from typing import Any, Dict, List, Mapping, Optional, Protocol

import structlog

from ..addresses import reencode_address
from ..config import CoinLookup, NetworkConfig, get_coin_lookup
from ..constants import DEFAULT_CONVERSION_FACTOR, DENOM_LOOKUP, SMALLEST_UNITS_PER_TOKEN, UNSUPPORTED_TOKEN_MESSAGE
from ..core.types import AccountInfo, Block, Coin, GasPrice, NetworkAccount, Validator
from ..errors import UnsupportedTokenError
from ..numbers import to_decimal

logger = structlog.get_logger()

DEFAULT_VALIDATOR_PREFIX = "cosmosvaloper"


class CoinReducer(Protocol):
    """Converts a raw chain coin into a display coin."""

    def __call__(
        self,
        coin: Optional[Mapping[str, Any]],
        coin_lookup: Optional[CoinLookup] = None,
        network: Optional[NetworkConfig] = None,
    ) -> Coin:
        ...


def denom_lookup(denom: str, network: Optional[NetworkConfig] = None) -> str:
    """Map a chain denomination to the denomination users know."""
    if network is not None:
        lookup = get_coin_lookup(network, denom, "chain_denom")
        if lookup:
            return lookup.view_denom
    return DENOM_LOOKUP.get(denom, denom.upper())


def coin_reducer(
    coin: Optional[Mapping[str, Any]],
    coin_lookup: Optional[CoinLookup] = None,
    network: Optional[NetworkConfig] = None,
) -> Coin:
    """
    Convert a raw ``{denom, amount}`` coin to display units.

    Without an explicit lookup the staking denomination's lookup of
    ``network`` is used.
    """
    if not coin:
        return Coin(denom="", amount=0)

    if coin_lookup is None and network is not None:
        coin_lookup = network.staking_coin_lookup

    factor = DEFAULT_CONVERSION_FACTOR
    if coin_lookup is not None and coin_lookup.chain_to_view_conversion_factor:
        factor = coin_lookup.chain_to_view_conversion_factor

    return Coin(
        denom=denom_lookup(coin["denom"], network),
        amount=to_decimal(coin.get("amount")) * factor,
    )


def gas_price_reducer(gas_price: Optional[Mapping[str, Any]]) -> GasPrice:
    """
    Convert a raw gas price to display units.

    Raises:
        UnsupportedTokenError: If there is no gas price for the denomination
    """
    if not gas_price:
        raise UnsupportedTokenError(UNSUPPORTED_TOKEN_MESSAGE)

    # Danger: this might not be the case for all future tokens
    return GasPrice(
        denom=denom_lookup(gas_price["denom"]),
        price=to_decimal(gas_price["price"]) / SMALLEST_UNITS_PER_TOKEN,
    )


def network_account_reducer(
    address: Optional[str],
    validators: Optional[Mapping[str, Validator]] = None,
    network: Optional[NetworkConfig] = None,
) -> NetworkAccount:
    """
    Resolve an address to the account view shown in the UI.

    If the address belongs to a validator operator it is shown with the
    validator's name and picture.
    """
    if not address:
        return NetworkAccount()

    validator = None
    if validators:
        prefix = network.validator_address_prefix if network else DEFAULT_VALIDATOR_PREFIX
        try:
            operator_address = reencode_address(address, prefix)
        except ValueError:
            logger.debug("address_not_reencodable", address=address, prefix=prefix)
        else:
            validator = validators.get(operator_address)

    if validator is None:
        return NetworkAccount(name=address, address=address)
    return NetworkAccount(
        name=validator.name or address,
        address=address,
        picture=validator.picture,
    )


def account_info_reducer(account_value: Mapping[str, Any], account_type: str) -> AccountInfo:
    if "VestingAccount" in account_type:
        account_value = account_value["BaseVestingAccount"]["BaseAccount"]
    return AccountInfo(
        address=account_value["address"],
        account_number=account_value.get("account_number"),
        sequence=account_value.get("sequence"),
    )


def block_reducer(
    network_id: str,
    block: Mapping[str, Any],
    transactions: List[Any],
    data: Optional[Dict[str, Any]] = None,
) -> Block:
    block_meta = block["block_meta"]
    header = block_meta["header"]
    return Block(
        id=block_meta["block_id"]["hash"],
        network_id=network_id,
        height=header["height"],
        chain_id=header["chain_id"],
        hash=block_meta["block_id"]["hash"],
        time=header["time"],
        transactions=transactions,
        proposer_address=header["proposer_address"],
        data=json.dumps(data or {}),
    )


def extract_involved_addresses(transaction: Mapping[str, Any], address_prefix: str = "cosmos") -> List[str]:
    """Collect the account addresses a transaction was tagged with."""
    tags = transaction.get("tags")
    # Failed transactions don't get tagged
    if not isinstance(tags, list):
        return []

    involved = []
    for tag in tags:
        value = tag.get("value")
        if value and value.startswith(address_prefix):
            involved.append(value)
    return involved

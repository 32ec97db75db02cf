"""
Staking reducers: validators, delegations and undelegations.

Delegations are held in shares of a validator's pool. The token amount
of a delegation is always derived from the validator's exchange rate:

    tokens = shares * validator.tokens / validator.delegator_shares
"""
import re
from decimal import Decimal, localcontext
from typing import Any, Mapping, Optional, Tuple

from ..constants import ACTIVE_STATUS_CODE, BANNED_JAILED_UNTIL, SMALLEST_UNITS_PER_TOKEN, WEBSITE_PLACEHOLDER
from ..core.types import (
    Delegation,
    TopVoter,
    Undelegation,
    Validator,
    ValidatorStatus,
    ValidatorStatusDetailed,
)
from ..numbers import Numeric, atoms, fix_decimals, parse_chain_time, to_decimal

_URL_SCHEME = re.compile(r"http[s]?")


def get_validator_status(validator: Mapping[str, Any]) -> Tuple[ValidatorStatus, ValidatorStatusDetailed]:
    """
    Derive (status, status_detailed) of a raw validator.

    Bonded validators are active. Chains mark validators that are jailed
    forever with a jailed_until timestamp far in the future, those are
    reported as banned.
    """
    if validator.get("status") in (ACTIVE_STATUS_CODE, str(ACTIVE_STATUS_CODE)):
        return ValidatorStatus.ACTIVE, ValidatorStatusDetailed.ACTIVE

    signing_info = validator.get("signing_info")
    if signing_info:
        jailed_until = parse_chain_time(signing_info.get("jailed_until"))
        if jailed_until is not None and jailed_until > BANNED_JAILED_UNTIL:
            return ValidatorStatus.INACTIVE, ValidatorStatusDetailed.BANNED

    return ValidatorStatus.INACTIVE, ValidatorStatusDetailed.INACTIVE


def _website(url: Optional[str]) -> str:
    if not url or url == WEBSITE_PLACEHOLDER:
        return ""
    if not _URL_SCHEME.search(url):
        return "https://" + url
    return url


def _uptime(signing_info: Optional[Mapping[str, Any]], signed_blocks_window: Numeric) -> float:
    missed = to_decimal(signing_info.get("missed_blocks_counter") if signing_info else 0)
    window = to_decimal(signed_blocks_window)
    if window == 0:
        return 1.0
    return float(1 - missed / window)


def validator_reducer(network_id: str, signed_blocks_window: Numeric, validator: Mapping[str, Any]) -> Validator:
    """Assemble the view record of a raw validator."""
    status, status_detailed = get_validator_status(validator)
    description = validator.get("description") or {}
    signing_info = validator.get("signing_info")
    commission = validator.get("commission") or {}
    rates = commission.get("commission_rates") or commission

    return Validator(
        id=validator["operator_address"],
        network_id=network_id,
        operator_address=validator["operator_address"],
        consensus_pubkey=validator.get("consensus_pubkey"),
        jailed=bool(validator.get("jailed")),
        details=description.get("details"),
        website=_website(description.get("website")),
        identity=description.get("identity"),
        name=description.get("moniker"),
        voting_power=format(fix_decimals(validator.get("voting_power")), "f"),
        start_height=signing_info.get("start_height") if signing_info else None,
        uptime_percentage=_uptime(signing_info, signed_blocks_window),
        tokens=atoms(validator.get("tokens")),
        commission_update_time=commission.get("update_time"),
        commission=rates.get("rate", "0"),
        max_commission=rates.get("max_rate"),
        max_change_commission=rates.get("max_change_rate"),
        status=status,
        status_detailed=status_detailed,
        delegator_shares=validator.get("delegator_shares") or "0",
        popularity=validator.get("popularity"),
    )


def calculate_tokens(validator: Validator, shares: Optional[Numeric]) -> Decimal:
    """
    Convert delegation shares of ``validator`` into tokens.

    A validator without any delegator shares has no tokens to hand out,
    so the result is 0 for any amount of shares.
    """
    total_shares = to_decimal(validator.delegator_shares)
    if total_shares == 0:
        return Decimal(0)

    with localcontext() as ctx:
        ctx.prec = 60
        tokens = to_decimal(shares) * to_decimal(validator.tokens) / total_shares
    return fix_decimals(tokens)


def expected_rewards_per_token(validator: Validator, commission: Numeric, annual_provision: Numeric) -> Decimal:
    """Expected yearly reward for one delegated token, net of commission."""
    if validator.status == ValidatorStatus.INACTIVE or validator.jailed:
        return Decimal(0)

    tokens = to_decimal(validator.tokens)
    if tokens == 0:
        return Decimal(0)

    # share of all provisioned block rewards all delegators of this validator get
    total_annual_validator_rewards = to_decimal(validator.voting_power) * to_decimal(annual_provision)
    # the validator takes a cut in amount of the commission
    total_annual_delegator_rewards = total_annual_validator_rewards * (1 - to_decimal(commission))
    return total_annual_delegator_rewards / tokens / SMALLEST_UNITS_PER_TOKEN


def delegation_reducer(delegation: Mapping[str, Any], validator: Validator, active: Optional[bool] = None) -> Delegation:
    return Delegation(
        id=delegation["validator_address"],
        validator_address=delegation["validator_address"],
        delegator_address=delegation["delegator_address"],
        validator=validator,
        amount=calculate_tokens(validator, delegation.get("shares")),
        active=active,
    )


def undelegation_reducer(
    undelegation: Mapping[str, Any],
    validator: Validator,
    conversion_factor: Optional[Numeric] = None,
) -> Undelegation:
    return Undelegation(
        id=f"{validator.operator_address}_{undelegation['creation_height']}",
        delegator_address=undelegation["delegator_address"],
        validator=validator,
        amount=atoms(undelegation.get("balance"), conversion_factor),
        start_height=undelegation["creation_height"],
        end_time=undelegation.get("completion_time"),
    )


def top_voter_reducer(top_voter: Validator) -> TopVoter:
    return TopVoter(
        name=top_voter.name,
        address=top_voter.operator_address,
        voting_power=top_voter.voting_power,
        validator=top_voter,
    )

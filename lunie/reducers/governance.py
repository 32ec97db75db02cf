"""
Governance reducers.

A proposal's status decides which raw fields describe its current time
window and whether the live tally or the final tally snapshot is shown.
"""
from typing import Any, Mapping, Optional, Tuple

from ..config import NetworkConfig, get_coin_lookup
from ..constants import DEFAULT_CONVERSION_FACTOR, FINALIZED_PROPOSAL_STATUSES, UNKNOWN_VOTE_PERCENTAGE
from ..core.types import Deposit, GovernanceParameters, Proposal, Tally, Validator, Vote
from ..numbers import Numeric, atoms, to_decimal
from .common import coin_reducer, denom_lookup, network_account_reducer


def _status(proposal: Mapping[str, Any]) -> str:
    return (proposal.get("proposal_status") or "").lower()


def proposal_begin_time(proposal: Mapping[str, Any]) -> Optional[str]:
    status = _status(proposal)
    if status == "depositperiod":
        return proposal.get("submit_time")
    if status == "votingperiod":
        return proposal.get("voting_start_time")
    if status in FINALIZED_PROPOSAL_STATUSES:
        return proposal.get("voting_end_time")
    return None


def proposal_end_time(proposal: Mapping[str, Any]) -> Optional[str]:
    status = _status(proposal)
    if status == "depositperiod":
        return proposal.get("deposit_end_time")
    # the end time lives in the past already if the proposal is finalized
    if status == "votingperiod" or status in FINALIZED_PROPOSAL_STATUSES:
        return proposal.get("voting_end_time")
    return None


def proposal_lifecycle_window(proposal: Mapping[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """Get the (begin, end) timestamps of the proposal's current status."""
    return proposal_begin_time(proposal), proposal_end_time(proposal)


def proposal_finalized(proposal: Mapping[str, Any]) -> bool:
    return _status(proposal) in FINALIZED_PROPOSAL_STATUSES


def get_deposit(proposal: Mapping[str, Any], conversion_factor: Optional[Numeric] = None) -> str:
    """Reduce all deposits of a proposal to one display amount."""
    total = sum((to_decimal(coin.get("amount")) for coin in proposal.get("total_deposit") or []), to_decimal(0))
    return atoms(total, conversion_factor)


def get_total_vote_percentage(
    proposal: Mapping[str, Any],
    total_bonded_tokens: Optional[Numeric],
    total_voted: Numeric,
    conversion_factor: Optional[Numeric] = None,
) -> float:
    """
    Share of all bonded tokens that voted on the proposal.

    Returns -1 if the share can't be known: for finalized proposals the
    bonded tokens at voting time are not available anymore.
    """
    if proposal_finalized(proposal):
        return UNKNOWN_VOTE_PERCENTAGE
    if not total_bonded_tokens:
        return UNKNOWN_VOTE_PERCENTAGE

    bonded = to_decimal(atoms(total_bonded_tokens, conversion_factor))
    if bonded == 0:
        return UNKNOWN_VOTE_PERCENTAGE

    voted = to_decimal(total_voted)
    if voted == 0:
        return 0
    return float(voted / bonded)


def tally_reducer(
    proposal: Mapping[str, Any],
    tally: Optional[Mapping[str, Any]],
    total_bonded_tokens: Optional[Numeric],
    conversion_factor: Optional[Numeric] = None,
) -> Tally:
    # if the proposal is out of voting, use the final result for the tally
    if proposal_finalized(proposal):
        tally = proposal.get("final_tally_result")
    tally = tally or {}

    yes = to_decimal(tally.get("yes"))
    no = to_decimal(tally.get("no"))
    abstain = to_decimal(tally.get("abstain"))
    veto = to_decimal(tally.get("no_with_veto"))
    total_voted = atoms(yes + no + abstain + veto, conversion_factor)

    return Tally(
        yes=atoms(yes, conversion_factor),
        no=atoms(no, conversion_factor),
        abstain=atoms(abstain, conversion_factor),
        veto=atoms(veto, conversion_factor),
        total=total_voted,
        total_voted_percentage=get_total_vote_percentage(
            proposal, total_bonded_tokens, total_voted, conversion_factor
        ),
    )


def deposit_reducer(deposit: Mapping[str, Any], network: NetworkConfig) -> Deposit:
    amounts = deposit.get("amount") or [None]
    return Deposit(
        amount=[coin_reducer(amounts[0], None, network)],
        depositer=network_account_reducer(deposit.get("depositor")),
    )


def vote_reducer(vote: Mapping[str, Any]) -> Vote:
    return Vote(
        id=vote["proposal_id"],
        voter=network_account_reducer(vote.get("voter")),
        option=vote["option"],
    )


def _staking_conversion_factor(network: Optional[NetworkConfig]) -> Optional[Numeric]:
    lookup = network.staking_coin_lookup if network is not None else None
    return lookup.chain_to_view_conversion_factor if lookup is not None else None


def proposal_reducer(
    network_id: str,
    proposal: Mapping[str, Any],
    tally: Optional[Mapping[str, Any]],
    proposer: Optional[Mapping[str, Any]],
    total_bonded_tokens: Optional[Numeric],
    detailed_votes: Any = None,
    validators: Optional[Mapping[str, Validator]] = None,
    network: Optional[NetworkConfig] = None,
) -> Proposal:
    """Assemble the view record of a governance proposal."""
    content = proposal.get("proposal_content") or {}
    value = content.get("value") or {}
    begin_time, end_time = proposal_lifecycle_window(proposal)
    proposer_address = (proposer or {}).get("proposer")
    conversion_factor = _staking_conversion_factor(network)

    return Proposal(
        id=int(proposal["proposal_id"]),
        network_id=network_id,
        type=content.get("type"),
        title=value.get("title"),
        description=value.get("description"),
        creation_time=proposal.get("submit_time"),
        status=proposal["proposal_status"],
        status_begin_time=begin_time,
        status_end_time=end_time,
        tally=tally_reducer(proposal, tally, total_bonded_tokens, conversion_factor),
        deposit=get_deposit(proposal, conversion_factor),
        proposer=network_account_reducer(proposer_address, validators, network),
        detailed_votes=detailed_votes,
    )


def governance_parameter_reducer(
    deposit_parameters: Mapping[str, Any],
    tallying_parameters: Mapping[str, Any],
    network: Optional[NetworkConfig] = None,
) -> GovernanceParameters:
    # for now assuming one deposit denom
    min_deposit = deposit_parameters["min_deposit"][0]
    coin_lookup = get_coin_lookup(network, min_deposit["denom"]) if network is not None else None
    factor = coin_lookup.chain_to_view_conversion_factor if coin_lookup is not None else DEFAULT_CONVERSION_FACTOR
    return GovernanceParameters(
        voting_threshold=tallying_parameters.get("threshold"),
        veto_threshold=tallying_parameters.get("veto"),
        deposit_denom=denom_lookup(min_deposit["denom"], network),
        deposit_threshold=to_decimal(min_deposit["amount"]) * factor,
    )

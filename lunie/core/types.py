"""
View record types produced by the reducers.
These types don't import from other modules of the package to prevent
circular dependencies.
"""
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProposalStatus(str, Enum):
    """Lifecycle status of a governance proposal."""
    DEPOSIT_PERIOD = "DepositPeriod"
    VOTING_PERIOD = "VotingPeriod"
    PASSED = "Passed"
    REJECTED = "Rejected"


class ValidatorStatus(str, Enum):
    """Coarse status of a validator."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ValidatorStatusDetailed(str, Enum):
    """Detailed status of a validator."""
    ACTIVE = "active"
    BANNED = "banned"  # Jailed forever
    INACTIVE = "inactive"


class BalanceType(str, Enum):
    STAKE = "STAKE"
    CURRENCY = "CURRENCY"


class ViewModel(BaseModel):
    # Nodes are inconsistent about quoting heights and counters
    model_config = ConfigDict(coerce_numbers_to_str=True)


class Coin(ViewModel):
    """An amount of a denomination in display units."""
    denom: str
    amount: Decimal = Field(default=Decimal(0), ge=0)


class NetworkAccount(ViewModel):
    """An address as shown to users, named after its validator if it has one."""
    name: str = ""
    address: str = ""
    picture: str = ""


class Tally(ViewModel):
    yes: str
    no: str
    abstain: str
    veto: str
    total: str
    total_voted_percentage: float  # -1 if unknown


class Proposal(ViewModel):
    """A governance proposal."""
    id: int
    network_id: str
    type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    creation_time: Optional[str] = None
    status: str
    status_begin_time: Optional[str] = None
    status_end_time: Optional[str] = None
    tally: Tally
    deposit: str
    proposer: NetworkAccount
    detailed_votes: Optional[Any] = None


class Validator(ViewModel):
    """A validator of a network."""
    id: str
    network_id: Optional[str] = None
    operator_address: str
    consensus_pubkey: Optional[Any] = None
    jailed: bool = False
    details: Optional[str] = None
    website: str = ""
    identity: Optional[str] = None
    name: Optional[str] = None
    picture: str = ""
    voting_power: str = "0.000000"
    start_height: Optional[str] = None
    uptime_percentage: float = 1.0
    tokens: str = "0.000000"
    commission_update_time: Optional[str] = None
    commission: str = "0"
    max_commission: Optional[str] = None
    max_change_commission: Optional[str] = None
    status: ValidatorStatus = ValidatorStatus.INACTIVE
    status_detailed: ValidatorStatusDetailed = ValidatorStatusDetailed.INACTIVE
    # needed to calculate delegation token amounts from shares
    delegator_shares: str = "0"
    popularity: Optional[Any] = None


class Delegation(ViewModel):
    id: str
    validator_address: str
    delegator_address: str
    validator: Validator
    amount: Decimal
    active: Optional[bool] = None


class Undelegation(ViewModel):
    id: str
    delegator_address: str
    validator: Validator
    amount: str
    start_height: Optional[str] = None
    end_time: Optional[str] = None


class Reward(ViewModel):
    """A reward of one denomination from one validator."""
    id: str
    denom: str
    amount: str
    fiat_value: Optional[Any] = None
    validator: Validator


class GasPrice(ViewModel):
    denom: str
    price: Decimal


class Balance(ViewModel):
    id: str
    denom: str
    amount: Decimal
    fiat_value: Optional[Any] = None
    gas_price: Optional[Decimal] = None


class BalanceView(ViewModel):
    """Balance of one denomination including chain-locked stake."""
    id: str
    type: BalanceType
    total: Decimal
    denom: str
    fiat_value: Optional[Any] = None
    available: Decimal
    available_fiat_value: Optional[Any] = None


class GovernanceParameters(ViewModel):
    voting_threshold: Optional[str] = None
    veto_threshold: Optional[str] = None
    deposit_denom: str
    deposit_threshold: Decimal


class TopVoter(ViewModel):
    name: Optional[str] = None
    address: str
    voting_power: str
    validator: Validator


class Deposit(ViewModel):
    amount: List[Coin]
    depositer: NetworkAccount


class Vote(ViewModel):
    id: str
    voter: NetworkAccount
    option: str


class Block(ViewModel):
    id: str
    network_id: str
    height: str
    chain_id: str
    hash: str
    time: str
    transactions: List[Any] = Field(default_factory=list)
    proposer_address: str
    data: str = "{}"


class AccountInfo(ViewModel):
    address: str
    account_number: Optional[str] = None
    sequence: Optional[str] = None


class TransactionData(ViewModel):
    """Payload handed to the signer for a reward claim."""
    type: str
    amounts: List[Coin]
    display_amounts: List[Coin]


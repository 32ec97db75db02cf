"""Core record types of the Lunie chain-data layer."""

from .types import (
    AccountInfo,
    Balance,
    BalanceType,
    BalanceView,
    Block,
    Coin,
    Delegation,
    Deposit,
    GasPrice,
    GovernanceParameters,
    NetworkAccount,
    Proposal,
    ProposalStatus,
    Reward,
    Tally,
    TopVoter,
    TransactionData,
    Undelegation,
    Validator,
    ValidatorStatus,
    ValidatorStatusDetailed,
    Vote,
)

__all__ = [
    'AccountInfo',
    'Balance',
    'BalanceType',
    'BalanceView',
    'Block',
    'Coin',
    'Delegation',
    'Deposit',
    'GasPrice',
    'GovernanceParameters',
    'NetworkAccount',
    'Proposal',
    'ProposalStatus',
    'Reward',
    'Tally',
    'TopVoter',
    'TransactionData',
    'Undelegation',
    'Validator',
    'ValidatorStatus',
    'ValidatorStatusDetailed',
    'Vote',
]

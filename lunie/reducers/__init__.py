"""
Reducers turning raw Cosmos-SDK node responses into view records.

Modify the following reducers with care as they are shared by every
network: atoms, proposal_begin_time, proposal_end_time, get_deposit,
tally_reducer, get_validator_status and coin_reducer.
"""

from ..numbers import atoms
from .balances import balance_reducer, balance_v2_reducer, fee_denom, total_stake_fiat_value_reducer
from .common import (
    CoinReducer,
    account_info_reducer,
    block_reducer,
    coin_reducer,
    denom_lookup,
    extract_involved_addresses,
    gas_price_reducer,
    network_account_reducer,
)
from .governance import (
    deposit_reducer,
    get_deposit,
    get_total_vote_percentage,
    governance_parameter_reducer,
    proposal_begin_time,
    proposal_end_time,
    proposal_finalized,
    proposal_lifecycle_window,
    proposal_reducer,
    tally_reducer,
    vote_reducer,
)
from .rewards import claim_rewards_transaction_data, reward_coin_reducer, reward_reducer, total_rewards_by_denom
from .staking import (
    calculate_tokens,
    delegation_reducer,
    expected_rewards_per_token,
    get_validator_status,
    top_voter_reducer,
    undelegation_reducer,
    validator_reducer,
)

__all__ = [
    'CoinReducer',
    'account_info_reducer',
    'atoms',
    'balance_reducer',
    'balance_v2_reducer',
    'block_reducer',
    'calculate_tokens',
    'claim_rewards_transaction_data',
    'coin_reducer',
    'delegation_reducer',
    'denom_lookup',
    'deposit_reducer',
    'expected_rewards_per_token',
    'extract_involved_addresses',
    'fee_denom',
    'gas_price_reducer',
    'get_deposit',
    'get_total_vote_percentage',
    'get_validator_status',
    'governance_parameter_reducer',
    'network_account_reducer',
    'proposal_begin_time',
    'proposal_end_time',
    'proposal_finalized',
    'proposal_lifecycle_window',
    'proposal_reducer',
    'reward_coin_reducer',
    'reward_reducer',
    'tally_reducer',
    'top_voter_reducer',
    'total_rewards_by_denom',
    'total_stake_fiat_value_reducer',
    'undelegation_reducer',
    'validator_reducer',
    'vote_reducer',
]

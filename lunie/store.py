"""
Minimal mutation based state container.

The store holds the account state of one client. State only changes
through named mutations committed to the store; subscribers are called
after every mutation with the mutation and the resulting state, which is
how the persisted state synchronizer learns about changes.
"""
import copy
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class Mutation:
    """A committed state change."""
    type: str
    payload: Any = None


Subscriber = Callable[[Mutation, Dict[str, Any]], None]


def default_state() -> Dict[str, Any]:
    """Get the state of a fresh, signed out client."""
    return {
        "session": {"address": None, "signed_in": False},
        "connection": {"network": None},
        "wallet": {"balances": []},
        "delegation": {
            "loaded": False,
            "committed_delegates": {},
            "unbonding_delegations": {},
        },
        "delegates": {"delegates": []},
        "staking_parameters": {},
        "pool": {},
        "proposals": {},
        "deposits": {},
        "votes": {},
        "governance_parameters": {},
        "cart": [],
    }


def operator_address(delegate: Any) -> Optional[str]:
    """Get the operator address of a validator record or its serialized form."""
    if isinstance(delegate, dict):
        return delegate.get("operator_address")
    return getattr(delegate, "operator_address", None)


# Mutations

def _set_wallet_balances(state, balances):
    state["wallet"]["balances"] = list(balances or [])


def _set_committed_delegation(state, payload):
    committed = state["delegation"]["committed_delegates"]
    if payload.get("delegation") is None:
        committed.pop(payload["validator_address"], None)
    else:
        committed[payload["validator_address"]] = payload["delegation"]
    state["delegation"]["loaded"] = True


def _set_unbonding_delegations(state, unbonding_delegations):
    state["delegation"]["unbonding_delegations"] = dict(unbonding_delegations or {})


def _set_delegates(state, delegates):
    state["delegates"]["delegates"] = list(delegates or [])


def _set_staking_parameters(state, parameters):
    state["staking_parameters"] = parameters


def _set_pool(state, pool):
    state["pool"] = pool


def _set_proposal(state, proposal):
    state["proposals"][str(proposal["id"])] = proposal


def _set_proposal_deposits(state, payload):
    state["deposits"][str(payload["proposal_id"])] = payload["deposits"]


def _set_proposal_votes(state, payload):
    state["votes"][str(payload["proposal_id"])] = payload["votes"]


def _set_proposal_tally(state, payload):
    proposal = state["proposals"].get(str(payload["proposal_id"]))
    if proposal is None:
        logger.debug("tally_for_unknown_proposal", proposal_id=payload["proposal_id"])
        return
    proposal["tally"] = payload["tally"]


def _set_gov_parameters(state, parameters):
    state["governance_parameters"] = parameters


def _set_user_address(state, address):
    state["session"]["address"] = address
    state["session"]["signed_in"] = bool(address)


def _sign_out(state, _payload=None):
    fresh = default_state()
    network = state["connection"]["network"]
    state.clear()
    state.update(fresh)
    state["connection"]["network"] = network


def _set_network(state, network_id):
    state["connection"]["network"] = network_id


def _add_to_cart(state, delegate):
    address = operator_address(delegate)
    if any(item["id"] == address for item in state["cart"]):
        return
    state["cart"].append({"id": address, "delegate": delegate, "value": 0})


MUTATIONS: Dict[str, Callable[[Dict[str, Any], Any], None]] = {
    "setWalletBalances": _set_wallet_balances,
    "setCommittedDelegation": _set_committed_delegation,
    "setUnbondingDelegations": _set_unbonding_delegations,
    "setDelegates": _set_delegates,
    "setStakingParameters": _set_staking_parameters,
    "setPool": _set_pool,
    "setProposal": _set_proposal,
    "setProposalDeposits": _set_proposal_deposits,
    "setProposalVotes": _set_proposal_votes,
    "setProposalTally": _set_proposal_tally,
    "setGovParameters": _set_gov_parameters,
    "setUserAddress": _set_user_address,
    "signOut": _sign_out,
    "setNetwork": _set_network,
    "addToCart": _add_to_cart,
}


class Store:
    """State container of one client."""

    def __init__(self, state: Optional[Dict[str, Any]] = None):
        self.state = state if state is not None else default_state()
        self._subscribers: List[Subscriber] = []

    @property
    def session_key(self) -> Tuple[Optional[str], Optional[str]]:
        """The (network id, address) pair identifying the signed in session."""
        return self.state["connection"]["network"], self.state["session"]["address"]

    def commit(self, mutation_type: str, payload: Any = None) -> None:
        """
        Apply a mutation and notify subscribers.

        Raises:
            KeyError: If no mutation of that type exists
        """
        try:
            mutate = MUTATIONS[mutation_type]
        except KeyError:
            raise KeyError(f"Unknown mutation type: {mutation_type}") from None

        mutate(self.state, payload)
        mutation = Mutation(mutation_type, payload)
        for subscriber in list(self._subscribers):
            subscriber(mutation, self.state)

    def subscribe(self, handler: Subscriber) -> Callable[[], None]:
        """Call ``handler`` after each mutation. Returns an unsubscribe function."""
        self._subscribers.append(handler)

        def unsubscribe():
            if handler in self._subscribers:
                self._subscribers.remove(handler)
        return unsubscribe

    def replace_state(self, state: Dict[str, Any]) -> None:
        """Swap the whole state without notifying subscribers."""
        self.state = state

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self.state)

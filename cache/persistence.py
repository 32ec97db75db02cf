"""
Persisted state synchronization.

Whitelisted slices of a client's store are written through to key-value
storage so a returning user sees balances, delegations and governance data
right away instead of waiting for the chain. Each signed in session, the
pair of network id and address, owns one record under
``store_<networkId>_<address>``.

Mutation bursts are debounced: every qualifying mutation (re)starts a timer
for its session and only the last one results in a write of the state as it
is when the timer fires. When a session signs in, the record is merged back
into the store.
"""
import asyncio
import copy
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Set

import structlog
from pydantic import BaseModel

from config.logging import log_error
from lunie.constants import DEFAULT_DEBOUNCE_SECONDS, PERSISTED_STATE_VERSION, STORE_KEY_PREFIX
from lunie.errors import CorruptCacheError
from lunie.store import Mutation, Store, operator_address
from monitoring.persistence_metrics import MUTATIONS_COALESCED, PERSIST_SKIPPED, PERSIST_WRITES, RESTORES

from .core import Storage

logger = structlog.get_logger()

# Mutations that change a persisted slice
PERSISTING_MUTATIONS = frozenset([
    "setWalletBalances",
    "setCommittedDelegation",
    "setUnbondingDelegations",
    "setDelegates",
    "setStakingParameters",
    "setPool",
    "setProposal",
    "setProposalDeposits",
    "setProposalVotes",
    "setProposalTally",
    "setGovParameters",
])

PERSISTED_SLICES = (
    "wallet",
    "delegation",
    "delegates",
    "staking_parameters",
    "pool",
    "proposals",
    "deposits",
    "votes",
    "governance_parameters",
)


def storage_key(network_id: Optional[str], address: Optional[str]) -> str:
    return f"{STORE_KEY_PREFIX}_{network_id}_{address}"


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_state(state: Mapping[str, Any]) -> str:
    """Serialize the persisted slices of ``state`` into a versioned record."""
    persisted = {name: state[name] for name in PERSISTED_SLICES if name in state}
    return json.dumps(
        {"version": PERSISTED_STATE_VERSION, "state": persisted},
        default=_json_default,
        sort_keys=True,
    )


def deserialize_state(key: str, raw: str) -> Dict[str, Any]:
    """
    Decode a persisted record into the slices it holds.

    Raises:
        CorruptCacheError: If the record is not a JSON object of a known version
    """
    try:
        record = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise CorruptCacheError(key, f"invalid JSON ({e})") from e

    if not isinstance(record, dict):
        raise CorruptCacheError(key, f"expected an object, got {type(record).__name__}")
    if record.get("version") != PERSISTED_STATE_VERSION:
        raise CorruptCacheError(key, f"unsupported version {record.get('version')!r}")
    state = record.get("state")
    if not isinstance(state, dict):
        raise CorruptCacheError(key, "missing state")

    return {name: state[name] for name in PERSISTED_SLICES if name in state}


def deep_merge(base: Dict[str, Any], update: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``update`` into a copy of ``base``; nested dicts are merged, anything else replaced."""
    merged = copy.deepcopy(base)
    for key, value in update.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class PersistedStateSynchronizer:
    """
    Writes store state through to storage and restores it on sign in.

    Per session key at most one write is pending. A pending write is still
    sleeping and can be cancelled; once its write started it is left to
    finish. Writes of one key run one after another, each serializing the
    state only once the previous one finished.
    """

    def __init__(self, store: Store, storage: Storage,
                 debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS):
        """
        Initialize the synchronizer.

        Args:
            store: Store whose state is persisted
            storage: Key-value storage receiving the records
            debounce_seconds: Quiet period after the last mutation before writing
        """
        self.store = store
        self.storage = storage
        self.debounce_seconds = debounce_seconds
        self._pending: Dict[str, asyncio.Task] = {}
        self._in_flight: Set[asyncio.Task] = set()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None

    def attach(self) -> "PersistedStateSynchronizer":
        """Start listening to the store's mutations."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self.handle_mutation)
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def pending_keys(self):
        return sorted(self._pending)

    def handle_mutation(self, mutation: Mutation, state: Mapping[str, Any]) -> None:
        """
        Schedule a write for a mutation of a persisted slice.

        Mutations of other slices and mutations while nobody is signed in
        are ignored.
        """
        if mutation.type not in PERSISTING_MUTATIONS:
            return

        network_id = state["connection"]["network"]
        address = state["session"]["address"]
        if not address:
            logger.debug("persist_ignored_signed_out", mutation=mutation.type)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            PERSIST_SKIPPED.labels(reason="no_event_loop").inc()
            logger.warning("persist_skipped_no_event_loop", mutation=mutation.type)
            return

        key = storage_key(network_id, address)
        if self.cancel(key):
            MUTATIONS_COALESCED.inc()
        self._pending[key] = loop.create_task(self._flush_later(key))
        logger.debug("persist_scheduled", key=key, mutation=mutation.type, delay=self.debounce_seconds)

    async def _flush_later(self, key: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        task = asyncio.current_task()
        if self._pending.get(key) is task:
            del self._pending[key]
        self._in_flight.add(task)
        try:
            await self._flush(key)
        finally:
            self._in_flight.discard(task)

    def _lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def _flush(self, key: str) -> bool:
        async with self._lock(key):
            return await self._write(key)

    async def _write(self, key: str) -> bool:
        network_id, address = self.store.session_key
        if not address or storage_key(network_id, address) != key:
            PERSIST_SKIPPED.labels(reason="session_changed").inc()
            logger.info("persist_skipped_session_changed", key=key)
            return False

        # snapshot taken under the key's lock so the last write holds the newest state
        payload = serialize_state(self.store.state)
        try:
            await self.storage.set(key, payload)
        except Exception as e:
            log_error(logger, e, {"key": key, "operation": "persist_state"})
            return False

        PERSIST_WRITES.labels(network=network_id).inc()
        logger.info("persisted_state_written", key=key, size=len(payload))
        return True

    def cancel(self, key: Optional[str] = None) -> int:
        """
        Cancel pending writes that did not start yet.

        Args:
            key: Session key to cancel, None for all sessions

        Returns:
            Number of cancelled writes
        """
        keys = [key] if key is not None else list(self._pending)
        cancelled = 0
        for pending_key in keys:
            task = self._pending.pop(pending_key, None)
            if task is not None and not task.done():
                task.cancel()
                cancelled += 1
        return cancelled

    async def flush_pending(self) -> int:
        """
        Write all pending records now instead of waiting for their timers.

        Returns:
            Number of records written
        """
        keys = list(self._pending)
        self.cancel()
        in_flight = list(self._in_flight)
        results = await asyncio.gather(*(self._flush(key) for key in keys))
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)
        return sum(1 for written in results if written)

    async def close(self) -> None:
        """Stop listening, drop pending writes and wait for started ones."""
        self.detach()
        cancelled = self.cancel()
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
        logger.info("persisted_state_synchronizer_closed", cancelled=cancelled)

    async def load_persisted_state(self) -> bool:
        """
        Restore the signed in session's record into the store.

        The record is merged into the current state. Delegates the account
        has committed delegations with are put into the cart again. A record
        that can't be read or decoded is deleted and ignored.

        Returns:
            True if a record was restored
        """
        network_id, address = self.store.session_key
        if not address:
            return False

        key = storage_key(network_id, address)
        try:
            raw = await self.storage.get(key)
            if raw is None:
                RESTORES.labels(outcome="miss").inc()
                logger.debug("persisted_state_missing", key=key)
                return False
            persisted = deserialize_state(key, raw)
        except Exception as e:
            RESTORES.labels(outcome="corrupt").inc()
            log_error(logger, e, {"key": key, "operation": "restore_state"})
            await self._discard(key)
            return False

        self.store.replace_state(deep_merge(self.store.state, persisted))

        committed = self.store.state["delegation"]["committed_delegates"]
        promoted = 0
        for delegate in self.store.state["delegates"]["delegates"]:
            if operator_address(delegate) in committed:
                self.store.commit("addToCart", delegate)
                promoted += 1

        RESTORES.labels(outcome="restored").inc()
        logger.info("persisted_state_restored", key=key, promoted_delegates=promoted)
        return True

    async def _discard(self, key: str) -> None:
        try:
            await self.storage.delete(key)
        except Exception as e:
            log_error(logger, e, {"key": key, "operation": "discard_state"})

"""
Validators across networks.

Some validator operators run nodes on several networks. The global store
collects the per-network stores and combines what it knows about such an
operator, like the uptime averaged over all its networks.
"""
import asyncio
from typing import Any, Dict, List, Mapping, Optional, Protocol

import structlog

logger = structlog.get_logger()


class NetworkStore(Protocol):
    """A per-network store as seen by the global store."""
    network: Any
    validators: Mapping[str, Any]


class ValidatorDatabase(Protocol):
    async def get_networks(self) -> List[Any]:
        ...

    async def get_premium_validators(self) -> List[Dict[str, Any]]:
        ...


def _network_id(store: NetworkStore) -> str:
    network = store.network
    return network["id"] if isinstance(network, Mapping) else network.id


def _uptime(validator: Any) -> float:
    if isinstance(validator, Mapping):
        return float(validator["uptime_percentage"])
    return float(validator.uptime_percentage)


class GlobalStore:
    """
    Aggregates the stores of all networks.

    The store becomes ready once a store was registered for every network
    the database knows; ``wait_ready`` blocks until then.
    """

    def __init__(self, database: ValidatorDatabase,
                 validators_lookup: Optional[Mapping[str, List[str]]] = None):
        """
        Initialize the global store.

        Args:
            database: Source of networks and premium validator records
            validators_lookup: Operator addresses per validator name
        """
        self.db = database
        self.stores: List[NetworkStore] = []
        self.networks: Optional[List[Any]] = None
        self.validators_lookup: Dict[str, List[str]] = dict(validators_lookup or {})
        self.global_validators: List[Dict[str, Any]] = []
        self._ready: Optional[asyncio.Event] = None

    @property
    def ready(self) -> bool:
        return self._ready is not None and self._ready.is_set()

    def _ready_event(self) -> asyncio.Event:
        # bound to the loop running the first call
        if self._ready is None:
            self._ready = asyncio.Event()
        return self._ready

    async def load_networks(self) -> None:
        """Fetch the networks a store is expected for."""
        self.networks = await self.db.get_networks()
        logger.info("global_store_networks_loaded", networks=len(self.networks))
        await self._check_ready()

    async def upsert_store(self, new_store: NetworkStore) -> None:
        """Register the store of a network, replacing a previous one of the same network."""
        network_id = _network_id(new_store)
        for index, store in enumerate(self.stores):
            if _network_id(store) == network_id:
                self.stores[index] = new_store
                logger.debug("global_store_updated", network=network_id)
                break
        else:
            self.stores.append(new_store)
            logger.debug("global_store_added", network=network_id, stores=len(self.stores))
        await self._check_ready()

    async def _check_ready(self) -> None:
        if self.ready or self.networks is None:
            return
        if len(self.stores) < len(self.networks):
            return

        self.global_validators = await self.get_global_validators()
        self._ready_event().set()
        logger.info("global_store_ready", networks=len(self.networks))

    async def wait_ready(self, timeout: Optional[float] = None) -> None:
        """
        Wait until every network registered its store.

        Raises:
            asyncio.TimeoutError: If ``timeout`` passes first
        """
        await asyncio.wait_for(self._ready_event().wait(), timeout)

    def calculate_average_uptime_percentage(self, name: str) -> Optional[float]:
        """
        Average the uptime of a validator over all networks it validates on.

        Returns:
            The average uptime or None if the validator is on no known network
        """
        aggregated_uptime = 0.0
        validator_networks = 0
        for operator_address in self.validators_lookup.get(name, []):
            for store in self.stores:
                validator = store.validators.get(operator_address)
                if validator is not None:
                    aggregated_uptime += _uptime(validator)
                    validator_networks += 1

        if validator_networks == 0:
            return None
        return aggregated_uptime / validator_networks

    async def get_global_validators(self) -> List[Dict[str, Any]]:
        premium_validators = await self.db.get_premium_validators()
        return [self.global_validator_reducer(validator) for validator in premium_validators]

    def global_validator_reducer(self, validator: Mapping[str, Any]) -> Dict[str, Any]:
        # manually maintained validator data plus what the chains tell about it
        return {
            **validator,
            "uptime_percentage": self.calculate_average_uptime_percentage(validator["name"]),
        }

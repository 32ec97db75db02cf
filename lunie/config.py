"""Network and application configuration for the Lunie core."""
from decimal import Decimal
from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_CONVERSION_FACTOR, DEFAULT_DEBOUNCE_SECONDS
from .errors import UnknownNetworkError

COIN_LOOKUP_KEYS = ("chain_denom", "view_denom")


class CoinLookup(BaseModel):
    """Maps a chain denomination to its display denomination."""
    chain_denom: str
    view_denom: str
    chain_to_view_conversion_factor: Decimal = DEFAULT_CONVERSION_FACTOR


class NetworkConfig(BaseModel):
    """Configuration of a Cosmos-SDK network as seen by the reducers."""
    id: str
    title: str = ""
    chain_id: str = ""
    staking_denom: str
    coin_lookup: List[CoinLookup] = Field(default_factory=list)
    address_prefix: str = "cosmos"
    validator_address_prefix: str = "cosmosvaloper"

    def get_coin_lookup(self, denom: str, key: str = "chain_denom") -> Optional[CoinLookup]:
        """Find the coin lookup entry whose ``key`` field equals ``denom``."""
        return get_coin_lookup(self, denom, key)

    @property
    def staking_coin_lookup(self) -> Optional[CoinLookup]:
        return self.get_coin_lookup(self.staking_denom, "view_denom")

    @classmethod
    def get_config(cls, network_id: str) -> "NetworkConfig":
        """Get configuration for a known network id."""
        try:
            return cls(**_NETWORKS[network_id])
        except KeyError:
            raise UnknownNetworkError(network_id) from None

    @classmethod
    def known_networks(cls) -> List[str]:
        return sorted(_NETWORKS)


def get_coin_lookup(network: NetworkConfig, denom: str, key: str = "chain_denom") -> Optional[CoinLookup]:
    """Resolve a coin lookup on ``network`` by chain or view denomination."""
    if key not in COIN_LOOKUP_KEYS:
        raise ValueError(f"Coin lookups can only be resolved by {COIN_LOOKUP_KEYS}, not {key!r}")
    for lookup in network.coin_lookup:
        if getattr(lookup, key) == denom:
            return lookup
    return None


_NETWORKS: Dict[str, Dict] = {
    "cosmos-hub-mainnet": {
        "id": "cosmos-hub-mainnet",
        "title": "Cosmos Hub",
        "chain_id": "cosmoshub-3",
        "staking_denom": "ATOM",
        "coin_lookup": [
            {"chain_denom": "uatom", "view_denom": "ATOM", "chain_to_view_conversion_factor": "0.000001"},
        ],
        "address_prefix": "cosmos",
        "validator_address_prefix": "cosmosvaloper",
    },
    "cosmos-hub-testnet": {
        "id": "cosmos-hub-testnet",
        "title": "Cosmos Hub Test",
        "chain_id": "gaia-testnet",
        "staking_denom": "MUON",
        "coin_lookup": [
            {"chain_denom": "umuon", "view_denom": "MUON", "chain_to_view_conversion_factor": "0.000001"},
        ],
        "address_prefix": "cosmos",
        "validator_address_prefix": "cosmosvaloper",
    },
    "emoney-mainnet": {
        "id": "emoney-mainnet",
        "title": "e-Money",
        "chain_id": "emoney-1",
        "staking_denom": "NGM",
        "coin_lookup": [
            {"chain_denom": "ungm", "view_denom": "NGM", "chain_to_view_conversion_factor": "0.000001"},
            {"chain_denom": "echf", "view_denom": "eCHF", "chain_to_view_conversion_factor": "0.000001"},
            {"chain_denom": "eeur", "view_denom": "eEUR", "chain_to_view_conversion_factor": "0.000001"},
            {"chain_denom": "ejpy", "view_denom": "eJPY", "chain_to_view_conversion_factor": "0.000001"},
        ],
        "address_prefix": "emoney",
        "validator_address_prefix": "emoneyvaloper",
    },
    "kava-mainnet": {
        "id": "kava-mainnet",
        "title": "Kava",
        "chain_id": "kava-3",
        "staking_denom": "KAVA",
        "coin_lookup": [
            {"chain_denom": "ukava", "view_denom": "KAVA", "chain_to_view_conversion_factor": "0.000001"},
        ],
        "address_prefix": "kava",
        "validator_address_prefix": "kavavaloper",
    },
}


class Settings(BaseSettings):
    """Runtime settings loaded from ``LUNIE_*`` environment variables."""

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True

    # Persisted state
    persist_debounce_seconds: float = Field(default=DEFAULT_DEBOUNCE_SECONDS, gt=0)
    storage_backend: str = Field(default="memory", pattern="^(memory|file|redis)$")
    storage_dir: str = "data/store"
    redis_url: Optional[str] = None

    # Fiat price feed protection
    fiat_failure_threshold: int = 5
    fiat_recovery_timeout: float = 60.0

    default_network: str = "cosmos-hub-mainnet"

    model_config = SettingsConfigDict(
        env_prefix="LUNIE_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()

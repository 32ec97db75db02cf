import pytest
from decimal import Decimal

from pydantic import ValidationError

from lunie.config import NetworkConfig, Settings, get_coin_lookup
from lunie.errors import UnknownNetworkError


def test_known_network():
    network = NetworkConfig.get_config("emoney-mainnet")

    assert network.staking_denom == "NGM"
    assert network.address_prefix == "emoney"
    assert network.validator_address_prefix == "emoneyvaloper"
    assert network.staking_coin_lookup.chain_denom == "ungm"
    assert "emoney-mainnet" in NetworkConfig.known_networks()


def test_unknown_network():
    with pytest.raises(UnknownNetworkError) as excinfo:
        NetworkConfig.get_config("no-such-net")
    assert "no-such-net" in str(excinfo.value)
    assert isinstance(excinfo.value, KeyError)


def test_get_coin_lookup():
    network = NetworkConfig.get_config("emoney-mainnet")

    by_chain = get_coin_lookup(network, "echf")
    assert by_chain.view_denom == "eCHF"
    assert by_chain.chain_to_view_conversion_factor == Decimal("0.000001")
    assert get_coin_lookup(network, "eCHF", "view_denom") is by_chain
    assert network.get_coin_lookup("uatom") is None

    with pytest.raises(ValueError):
        get_coin_lookup(network, "echf", "denom")


def test_settings_defaults(monkeypatch):
    for name in ("LUNIE_STORAGE_BACKEND", "LUNIE_PERSIST_DEBOUNCE_SECONDS", "LUNIE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.persist_debounce_seconds == 2.0
    assert settings.storage_backend == "memory"
    assert settings.log_level == "INFO"
    assert settings.default_network == "cosmos-hub-mainnet"


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("LUNIE_STORAGE_BACKEND", "file")
    monkeypatch.setenv("LUNIE_PERSIST_DEBOUNCE_SECONDS", "0.5")
    monkeypatch.setenv("LUNIE_JSON_LOGS", "false")

    settings = Settings(_env_file=None)

    assert settings.storage_backend == "file"
    assert settings.persist_debounce_seconds == 0.5
    assert settings.json_logs is False


@pytest.mark.parametrize("name,value", [
    ("LUNIE_STORAGE_BACKEND", "sqlite"),
    ("LUNIE_PERSIST_DEBOUNCE_SECONDS", "0"),
])
def test_invalid_settings(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)

"""Tests for configuration loading and credentials."""

import json
import os
from decimal import Decimal

import pytest
from hyperliquid.utils import constants

from conftest import MAIN_WALLET, TEST_PRIVATE_KEY
from hl_agent_gateway.utils.config import (
    SIGNING_DOMAIN,
    SPOT_SYMBOL_REMAP,
    GatewayConfig,
    get_agent_credentials,
    load_config,
)
from hl_agent_gateway.utils.enums import ClosePriceMode
from hl_agent_gateway.utils.exceptions import ConfigurationError

ENV_NAMES = [
    "HLGW_BASE_URL",
    "HLGW_NETWORK",
    "HLGW_DEFAULT_SLIPPAGE",
    "HLGW_CLOSE_PRICE_MODE",
    "HLGW_DERIVE_TICK_FROM_BOOK",
    "HLGW_LOG_LEVEL",
    "HL_AGENT_KEY",
    "HL_MAIN_WALLET",
    "HL_VAULT_ADDRESS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = load_config(env_file=None)
    assert config == GatewayConfig()
    assert config.base_url == constants.MAINNET_API_URL
    assert config.is_mainnet is True
    assert config.source == "a"
    assert config.default_slippage == Decimal("0.01")
    assert config.close_price_mode == ClosePriceMode.SLIPPAGE_IOC


def test_testnet_preset():
    config = GatewayConfig.testnet()
    assert config.base_url == constants.TESTNET_API_URL
    assert config.source == "b"


def test_config_is_frozen():
    with pytest.raises(AttributeError):
        GatewayConfig().is_mainnet = False


def test_signing_constants_are_read_only():
    assert SIGNING_DOMAIN["chainId"] == 1337
    with pytest.raises(TypeError):
        SIGNING_DOMAIN["chainId"] = 1
    with pytest.raises(TypeError):
        SPOT_SYMBOL_REMAP["DOGE"] = "UDOGE"


def test_json_file_with_placeholders(tmp_path, monkeypatch):
    monkeypatch.setenv("MY_SLIPPAGE", "0.02")
    path = tmp_path / "gateway.json"
    path.write_text(json.dumps({
        "network": "testnet",
        "default_slippage": "${MY_SLIPPAGE}",
        "close_price_mode": "zero_ioc",
        "derive_tick_from_book": False,
    }))
    config = load_config(str(path), env_file=None)
    assert config.is_mainnet is False
    assert config.base_url == constants.TESTNET_API_URL
    assert config.default_slippage == Decimal("0.02")
    assert config.close_price_mode == ClosePriceMode.ZERO_IOC
    assert config.derive_tick_from_book is False


def test_env_overrides_json(tmp_path, monkeypatch):
    path = tmp_path / "gateway.json"
    path.write_text(json.dumps({"default_slippage": "0.02"}))
    monkeypatch.setenv("HLGW_DEFAULT_SLIPPAGE", "0.005")
    monkeypatch.setenv("HLGW_BASE_URL", "http://localhost:3001/")
    config = load_config(str(path), env_file=None)
    assert config.default_slippage == Decimal("0.005")
    assert config.base_url == "http://localhost:3001"


def test_dotenv_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("HLGW_NETWORK=testnet\nHLGW_LOG_LEVEL=debug\n")
    try:
        config = load_config(env_file=str(env_file))
    finally:
        # load_dotenv writes os.environ directly
        os.environ.pop("HLGW_NETWORK", None)
        os.environ.pop("HLGW_LOG_LEVEL", None)
    assert config.is_mainnet is False
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize("raw,match", [
    ({"network": "devnet"}, "network"),
    ({"default_slippage": "1"}, "default_slippage"),
    ({"default_slippage": "abc"}, "default_slippage"),
    ({"close_price_mode": "market"}, "close_price_mode"),
    ({"derive_tick_from_book": "maybe"}, "derive_tick_from_book"),
])
def test_invalid_values(tmp_path, raw, match):
    path = tmp_path / "gateway.json"
    path.write_text(json.dumps(raw))
    with pytest.raises(ConfigurationError, match=match):
        load_config(str(path), env_file=None)


def test_missing_file():
    with pytest.raises(ConfigurationError):
        load_config("/nonexistent/gateway.json", env_file=None)


def test_invalid_json(tmp_path):
    path = tmp_path / "gateway.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError):
        load_config(str(path), env_file=None)


def test_unknown_placeholder(tmp_path):
    path = tmp_path / "gateway.json"
    path.write_text(json.dumps({"base_url": "${HLGW_TEST_UNSET_VARIABLE}"}))
    with pytest.raises(ConfigurationError, match="HLGW_TEST_UNSET_VARIABLE"):
        load_config(str(path), env_file=None)


def test_agent_credentials(monkeypatch):
    monkeypatch.setenv("HL_AGENT_KEY", TEST_PRIVATE_KEY)
    monkeypatch.setenv("HL_MAIN_WALLET", MAIN_WALLET)
    credentials = get_agent_credentials()
    assert credentials == {"agent_key": TEST_PRIVATE_KEY, "main_wallet": MAIN_WALLET, "vault_address": None}


def test_missing_credentials_named_without_values(monkeypatch):
    monkeypatch.setenv("HL_AGENT_KEY", TEST_PRIVATE_KEY)
    with pytest.raises(ConfigurationError) as exc:
        get_agent_credentials()
    assert "HL_MAIN_WALLET" in exc.value.message
    assert TEST_PRIVATE_KEY not in exc.value.message

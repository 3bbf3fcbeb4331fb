"""
Configuration for the order gateway.

Holds the process-wide signing constants and loads the runtime settings from
an optional JSON file, a ``.env`` file and ``HLGW_*`` environment variables
(later sources win). JSON values may use ``${VAR_NAME}`` placeholders.
"""

import json
import os
import re
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from hyperliquid.utils import constants

from hl_agent_gateway.utils.enums import ClosePriceMode
from hl_agent_gateway.utils.exceptions import ConfigurationError
from hl_agent_gateway.utils.logger import get_component_logger

logger = get_component_logger("config")


# ==================== Signing Constants ====================

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Off-chain signing namespace; independent of the settlement chain
SIGNING_CHAIN_ID = 1337
SIGNING_DOMAIN = MappingProxyType({
    "name": "Exchange",
    "version": "1",
    "chainId": SIGNING_CHAIN_ID,
    "verifyingContract": ZERO_ADDRESS,
})

MAINNET_SOURCE = "a"
TESTNET_SOURCE = "b"

ORDER_ACTION_TYPE = "order"
ORDER_GROUPING = "na"


# ==================== Asset Constants ====================

SPOT_ASSET_OFFSET = 10000
QUOTE_TOKEN_INDEX = 0

# Perp tickers whose spot token trades under a different name
SPOT_SYMBOL_REMAP = MappingProxyType({
    "BTC": "UBTC",
    "ETH": "UETH",
    "SOL": "USOL",
    "FARTCOIN": "UFART",
    "PUMP": "UPUMP",
})

# Price decimal caps: price decimals <= MAX_DECIMALS - szDecimals
PERP_MAX_DECIMALS = 6
SPOT_MAX_DECIMALS = 8
PRICE_SIGNIFICANT_FIGURES = 5


# ==================== Runtime Settings ====================

@dataclass(frozen=True)
class GatewayConfig:
    """Runtime settings, immutable once loaded."""

    base_url: str = constants.MAINNET_API_URL
    is_mainnet: bool = True
    default_slippage: Decimal = Decimal("0.01")
    close_price_mode: ClosePriceMode = ClosePriceMode.SLIPPAGE_IOC
    derive_tick_from_book: bool = True
    log_level: str = "INFO"

    @property
    def source(self) -> str:
        return MAINNET_SOURCE if self.is_mainnet else TESTNET_SOURCE

    @classmethod
    def testnet(cls, **overrides: Any) -> "GatewayConfig":
        return cls(base_url=constants.TESTNET_API_URL, is_mainnet=False, **overrides)


_ENV_KEYS = {
    "HLGW_BASE_URL": "base_url",
    "HLGW_NETWORK": "network",
    "HLGW_DEFAULT_SLIPPAGE": "default_slippage",
    "HLGW_CLOSE_PRICE_MODE": "close_price_mode",
    "HLGW_DERIVE_TICK_FROM_BOOK": "derive_tick_from_book",
    "HLGW_LOG_LEVEL": "log_level",
}


def load_config(config_path: Optional[str] = None, env_file: Optional[str] = ".env") -> GatewayConfig:
    """
    Load gateway configuration.

    Args:
        config_path: Optional JSON file with gateway settings
        env_file: ``.env`` file to load into the environment first

    Returns:
        Validated GatewayConfig

    Raises:
        ConfigurationError: Missing file, bad JSON, unknown placeholder or
            out-of-range value
    """
    if env_file and Path(env_file).exists():
        load_dotenv(env_file)
        logger.debug(f"Loaded environment variables from {env_file}")

    raw: Dict[str, Any] = {}
    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        try:
            with open(config_file, 'r') as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigurationError("Configuration JSON must be an object")
        raw = _substitute_env_vars(raw)

    for env_name, key in _ENV_KEYS.items():
        value = os.getenv(env_name)
        if value not in (None, ""):
            raw[key] = value

    config = _build_config(raw)
    logger.info(
        f"Gateway configured: url={config.base_url} mainnet={config.is_mainnet} "
        f"slippage={config.default_slippage} close_mode={config.close_price_mode}"
    )
    return config


def _substitute_env_vars(obj: Any) -> Any:
    """
    Recursively substitute ${VAR_NAME} with environment variable values.

    Args:
        obj: Object to process (dict, list, str, or other)

    Returns:
        Object with substituted values
    """
    if isinstance(obj, dict):
        return {key: _substitute_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_substitute_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        pattern = r'\$\{([^}]+)\}'
        result = obj
        for var_name in re.findall(pattern, obj):
            env_value = os.getenv(var_name)
            if env_value is None:
                raise ConfigurationError(f"Environment variable not found: {var_name}")
            result = result.replace(f"${{{var_name}}}", env_value)
        return result
    else:
        return obj


def _parse_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{field} must be a boolean, got {value!r}")


def _build_config(raw: Dict[str, Any]) -> GatewayConfig:
    config = GatewayConfig()

    network = raw.pop("network", None)
    if network is not None:
        network = str(network).lower()
        if network == "testnet":
            config = GatewayConfig.testnet()
        elif network != "mainnet":
            raise ConfigurationError(f"network must be 'mainnet' or 'testnet', got {network!r}")

    updates: Dict[str, Any] = {}
    if "base_url" in raw:
        updates["base_url"] = str(raw["base_url"]).rstrip("/")
    if "is_mainnet" in raw:
        updates["is_mainnet"] = _parse_bool(raw["is_mainnet"], "is_mainnet")

    if "default_slippage" in raw:
        try:
            slippage = Decimal(str(raw["default_slippage"]))
        except InvalidOperation:
            raise ConfigurationError(f"default_slippage is not a number: {raw['default_slippage']!r}")
        if not (Decimal("0") <= slippage < Decimal("1")):
            raise ConfigurationError(f"default_slippage must be in [0, 1), got {slippage}")
        updates["default_slippage"] = slippage

    if "close_price_mode" in raw:
        try:
            updates["close_price_mode"] = ClosePriceMode(str(raw["close_price_mode"]).lower())
        except ValueError:
            allowed = ", ".join(mode.value for mode in ClosePriceMode)
            raise ConfigurationError(
                f"close_price_mode must be one of {allowed}, got {raw['close_price_mode']!r}"
            )

    if "derive_tick_from_book" in raw:
        updates["derive_tick_from_book"] = _parse_bool(raw["derive_tick_from_book"], "derive_tick_from_book")

    if "log_level" in raw:
        updates["log_level"] = str(raw["log_level"]).upper()

    return replace(config, **updates)


def get_agent_credentials() -> Dict[str, Optional[str]]:
    """
    Get agent credentials from environment variables.

    Returns:
        {"agent_key", "main_wallet", "vault_address"}; vault_address may be None

    Raises:
        ConfigurationError: If the agent key or main wallet is missing
    """
    agent_key = os.getenv("HL_AGENT_KEY")
    main_wallet = os.getenv("HL_MAIN_WALLET")

    missing = []
    if not agent_key:
        missing.append("HL_AGENT_KEY")
    if not main_wallet:
        missing.append("HL_MAIN_WALLET")

    if missing:
        raise ConfigurationError(f"Missing agent credentials in environment: {', '.join(missing)}")

    return {
        "agent_key": agent_key,
        "main_wallet": main_wallet,
        "vault_address": os.getenv("HL_VAULT_ADDRESS") or None,
    }

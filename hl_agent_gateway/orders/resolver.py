"""
Asset resolution: market symbol -> venue asset identifier.

Perpetuals are identified by their position in ``meta.universe``. Spot pairs
live in a separate identifier space: ``10000 + position`` of the pair in
``spotMeta.universe`` that combines the target token with the quote token.
"""

from typing import Any, Dict, Mapping, Optional

from hl_agent_gateway.orders.models import AssetDescriptor
from hl_agent_gateway.utils.config import (
    QUOTE_TOKEN_INDEX,
    SPOT_ASSET_OFFSET,
    SPOT_SYMBOL_REMAP,
)
from hl_agent_gateway.utils.enums import AssetClass
from hl_agent_gateway.utils.exceptions import AssetNotFound, MetadataUnavailable
from hl_agent_gateway.utils.logger import get_component_logger

logger = get_component_logger("resolver")


def resolve(
    symbol: str,
    asset_class: AssetClass,
    meta: Optional[Dict[str, Any]] = None,
    spot_meta: Optional[Dict[str, Any]] = None,
    remap: Mapping[str, str] = SPOT_SYMBOL_REMAP,
) -> AssetDescriptor:
    """
    Resolve a symbol against freshly fetched venue metadata.

    Args:
        symbol: Display symbol, e.g. "ETH" or "HYPE"
        asset_class: AssetClass.PERP or AssetClass.SPOT
        meta: Perp metadata (required for perps)
        spot_meta: Spot metadata (required for spot)
        remap: Spot token renames applied before the token lookup

    Raises:
        AssetNotFound: No matching universe / token / pair entry
        MetadataUnavailable: The metadata needed for this asset class is missing
    """
    if asset_class == AssetClass.PERP:
        if meta is None:
            raise MetadataUnavailable("Perp metadata required to resolve a perpetual")
        return _resolve_perp(symbol, meta)
    if spot_meta is None:
        raise MetadataUnavailable("Spot metadata required to resolve a spot pair")
    return _resolve_spot(symbol, spot_meta, remap)


def _resolve_perp(symbol: str, meta: Dict[str, Any]) -> AssetDescriptor:
    universe = _require_list(meta, "universe", "perp metadata")
    for position, entry in enumerate(universe):
        if entry.get("name") == symbol:
            descriptor = AssetDescriptor(
                symbol=symbol,
                asset_id=position,
                size_decimals=int(entry["szDecimals"]),
                asset_class=AssetClass.PERP,
                price_key=symbol,
            )
            logger.debug(f"Resolved perp {symbol} -> asset {position} (szDecimals={descriptor.size_decimals})")
            return descriptor
    raise AssetNotFound(symbol)


def _resolve_spot(symbol: str, spot_meta: Dict[str, Any], remap: Mapping[str, str]) -> AssetDescriptor:
    tokens = _require_list(spot_meta, "tokens", "spot metadata")
    universe = _require_list(spot_meta, "universe", "spot metadata")

    token_name = remap.get(symbol, symbol)
    token = next((t for t in tokens if t.get("name") == token_name), None)
    if token is None:
        raise AssetNotFound(symbol, lookup_key=token_name)

    token_index = int(token["index"])
    pair_key = f"tokens=[{token_index}, {QUOTE_TOKEN_INDEX}]"
    if token_index == QUOTE_TOKEN_INDEX:
        # The quote token has no pair against itself
        raise AssetNotFound(symbol, lookup_key=pair_key)

    wanted = {token_index, QUOTE_TOKEN_INDEX}
    for position, pair in enumerate(universe):
        pair_tokens = pair.get("tokens") or []
        if len(pair_tokens) == 2 and set(pair_tokens) == wanted:
            descriptor = AssetDescriptor(
                symbol=symbol,
                asset_id=SPOT_ASSET_OFFSET + position,
                size_decimals=int(token.get("szDecimals", 0)),
                asset_class=AssetClass.SPOT,
                price_key=_spot_price_key(pair, position),
            )
            logger.debug(
                f"Resolved spot {symbol} (token {token_name}#{token_index}) -> asset {descriptor.asset_id} "
                f"price key {descriptor.price_key}"
            )
            return descriptor

    raise AssetNotFound(symbol, lookup_key=pair_key)


def _spot_price_key(pair: Dict[str, Any], position: int) -> str:
    # Canonical pairs ("PURR/USDC") are keyed by name, the rest by "@index"
    name = pair.get("name") or ""
    if "/" in name:
        return name
    return f"@{pair.get('index', position)}"


def _require_list(payload: Dict[str, Any], key: str, what: str) -> list:
    value = payload.get(key) if isinstance(payload, dict) else None
    if not isinstance(value, list):
        raise MetadataUnavailable(f"Malformed {what}: missing '{key}' list")
    return value

"""
Request handlers: map open / close / sign requests onto the order pipeline.

Handlers validate the raw request, run the pipeline and always answer with
a JSON-ready dict: ``{"success": True, ...}`` or
``{"success": False, "error": {"kind", "message"}}``. Strategy fields
(tp, sl, timeout) are passed back untouched; this layer does not act on them.
"""

import time
from typing import Any, Dict, Mapping, Optional

from eth_utils import is_hex_address

from hl_agent_gateway.orders.pipeline import OrderIntent, OrderPipeline
from hl_agent_gateway.utils.enums import (
    AssetClass,
    ClosePriceMode,
    OrderMode,
    OrderSide,
    SizeType,
    TpSl,
)
from hl_agent_gateway.utils.exceptions import GatewayError, InputValidationError
from hl_agent_gateway.utils.logger import get_component_logger, redact

logger = get_component_logger("handlers")

PASSTHROUGH_FIELDS = ("tp", "sl", "timeout")


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def _error_response(error: Exception) -> Dict[str, Any]:
    if isinstance(error, GatewayError):
        logger.error(f"{error.kind}: {error.message}")
        return {"success": False, "error": error.to_dict()}
    logger.exception("Unexpected error while handling request")
    return {"success": False, "error": {"kind": type(error).__name__, "message": redact(str(error))}}


def _enum(enum_cls, value: Any, field: str, default=None):
    if value in (None, ""):
        if default is None:
            raise InputValidationError(f"Missing required parameter: {field}")
        return default
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InputValidationError(f"{field} must be one of {allowed}, got {value!r}")


def _optional_address(value: Any, field: str) -> Optional[str]:
    if value in (None, ""):
        return None
    if not isinstance(value, str) or not is_hex_address(value):
        raise InputValidationError(f"{field} must be a 0x-prefixed 20-byte hex address")
    return value


def _require(request: Mapping[str, Any], *fields: str):
    if not isinstance(request, Mapping):
        raise InputValidationError("Request body must be a JSON object")
    missing = [name for name in fields if request.get(name) in (None, "")]
    if missing:
        raise InputValidationError(f"Missing required parameters: {', '.join(missing)}")


def intent_from_request(
    request: Mapping[str, Any],
    default_side: OrderSide,
    reduce_only: bool = False,
) -> OrderIntent:
    """
    Build an OrderIntent from a raw request.

    ``notional`` takes precedence over ``size``; ``size`` is read per
    ``size_type`` (base quantity unless stated otherwise).
    """
    if not isinstance(request, Mapping):
        raise InputValidationError("Request body must be a JSON object")

    symbol = request.get("market") or request.get("symbol")
    if not symbol:
        raise InputValidationError("Missing required parameters: market")

    if request.get("notional") not in (None, ""):
        amount, size_type = request["notional"], SizeType.NOTIONAL
    elif request.get("size") not in (None, ""):
        amount = request["size"]
        size_type = _enum(SizeType, request.get("size_type"), "size_type", SizeType.QUANTITY)
    else:
        raise InputValidationError("Missing required parameters: size")

    mode = _enum(OrderMode, request.get("order_mode"), "order_mode", OrderMode.MARKET_IOC)
    tpsl = None
    if mode == OrderMode.TRIGGER_MARKET:
        tpsl = _enum(TpSl, request.get("tpsl"), "tpsl")
    close_mode = None
    if request.get("close_price_mode") not in (None, ""):
        close_mode = _enum(ClosePriceMode, request["close_price_mode"], "close_price_mode")

    return OrderIntent(
        symbol=str(symbol),
        asset_class=_enum(AssetClass, request.get("asset_class"), "asset_class", AssetClass.PERP),
        side=_enum(OrderSide, request.get("side"), "side", default_side),
        amount=amount,
        size_type=size_type,
        mode=mode,
        reduce_only=reduce_only,
        slippage=request.get("slippage"),
        tick_size=request.get("tick_size"),
        trigger_price=request.get("trigger_price"),
        tpsl=tpsl,
        close_price_mode=close_mode,
    )


async def handle_open(request: Mapping[str, Any], pipeline: OrderPipeline) -> Dict[str, Any]:
    """Open (or add to) a position with a market IOC or trigger-market order."""
    try:
        _require(request, "main_wallet", "agent_key")
        main_wallet = _optional_address(request["main_wallet"], "main_wallet")
        vault_address = _optional_address(request.get("vault_address"), "vault_address")
        intent = intent_from_request(request, default_side=OrderSide.BUY)

        logger.info(f"Open request: {intent.side} {intent.amount} {intent.symbol} for {main_wallet}")
        result = await pipeline.place(intent, request["agent_key"], vault_address)
    except Exception as e:
        return _error_response(e)

    response = {"success": True}
    response.update(result.to_dict())
    response["payload"] = {
        "market": intent.symbol,
        "size": result.envelope["action"]["orders"][0]["s"],
        "is_buy": intent.side.is_buy,
    }
    for name in PASSTHROUGH_FIELDS:
        response[name] = request.get(name)
    response["timestamp"] = _timestamp_ms()
    return response


async def handle_close(request: Mapping[str, Any], pipeline: OrderPipeline) -> Dict[str, Any]:
    """Close (reduce) a position with a reduce-only IOC order."""
    try:
        _require(request, "main_wallet", "agent_key")
        main_wallet = _optional_address(request["main_wallet"], "main_wallet")
        vault_address = _optional_address(request.get("vault_address"), "vault_address")
        intent = intent_from_request(request, default_side=OrderSide.SELL, reduce_only=True)

        logger.info(f"Close request: {intent.side} {intent.amount} {intent.symbol} for {main_wallet}")
        result = await pipeline.place(intent, request["agent_key"], vault_address)
    except Exception as e:
        return _error_response(e)

    response = {"success": True}
    response.update(result.to_dict())
    response["exit_price"] = response["realized_price_or_null"]
    response["timestamp"] = _timestamp_ms()
    return response


def handle_sign(request: Mapping[str, Any], pipeline: OrderPipeline) -> Dict[str, Any]:
    """Sign a caller-built order action without submitting it."""
    try:
        _require(request, "agent_key", "action")
        vault_address = _optional_address(request.get("vault_address"), "vault_address")
        nonce = request.get("nonce")
        if nonce is not None and (isinstance(nonce, bool) or not isinstance(nonce, int)):
            raise InputValidationError("nonce must be an integer number of milliseconds")
        is_mainnet = request.get("is_mainnet")
        if is_mainnet is not None and not isinstance(is_mainnet, bool):
            raise InputValidationError("is_mainnet must be a boolean")

        signed = pipeline.sign_action(
            request["action"], request["agent_key"], vault_address, nonce=nonce, is_mainnet=is_mainnet,
        )
    except Exception as e:
        return _error_response(e)

    return {
        "success": True,
        "signature": signed.signature.to_dict(),
        "nonce": signed.nonce,
        "action_hash": "0x" + signed.action_hash.hex(),
        "envelope": signed.envelope,
    }

"""
Canonical MessagePack encoding of trade actions.

The venue re-derives the action hash from its own msgpack encoding of the
action it receives, so our bytes must match field for field. Maps are
rebuilt in schema order before packing; whatever key order the caller used
is irrelevant.

    {"type", "orders": [{"a", "b", "p", "s", "r", "t"}], "grouping"}

``t`` is either ``{"limit": {"tif"}}`` or
``{"trigger": {"isMarket", "triggerPx", "tpsl"}}``.
"""

from typing import Any, Dict, Mapping, Union

import msgpack

from hl_agent_gateway.orders.models import TradeAction
from hl_agent_gateway.orders.normalizer import canonical_decimal
from hl_agent_gateway.utils.config import ORDER_ACTION_TYPE
from hl_agent_gateway.utils.exceptions import EncodingError, InputValidationError

_TIFS = ("Gtc", "Ioc", "Alo")
_TPSL = ("tp", "sl")
_MSGPACK_UINT_MAX = 2 ** 64 - 1


def encode(action: Union[TradeAction, Mapping[str, Any]]) -> bytes:
    """
    Encode an order action to the exact bytes the venue hashes.

    Args:
        action: TradeAction or an equivalent plain mapping

    Raises:
        EncodingError: The action does not fit the order schema
    """
    return msgpack.packb(canonical_action(action))


def canonical_action(action: Union[TradeAction, Mapping[str, Any]]) -> Dict[str, Any]:
    """Schema-ordered, type-checked copy of an order action (the JSON that is sent)."""
    if isinstance(action, TradeAction):
        action = action.to_wire()
    if not isinstance(action, Mapping):
        raise EncodingError(f"Action must be a mapping, got {type(action).__name__}")

    _expect_keys(action, ("type", "orders", "grouping"), "action")
    if action["type"] != ORDER_ACTION_TYPE:
        raise EncodingError(f"Unsupported action type: {action['type']!r}")

    orders = action["orders"]
    if not isinstance(orders, (list, tuple)) or not orders:
        raise EncodingError("Action must carry a non-empty orders list")

    return {
        "type": ORDER_ACTION_TYPE,
        "orders": [_canonical_order(order, i) for i, order in enumerate(orders)],
        "grouping": _expect_str(action["grouping"], "grouping"),
    }


def _canonical_order(order: Any, index: int) -> Dict[str, Any]:
    where = f"orders[{index}]"
    if not isinstance(order, Mapping):
        raise EncodingError(f"{where} must be a mapping")
    _expect_keys(order, ("a", "b", "p", "s", "r", "t"), where)

    asset = order["a"]
    # bool is an int subclass; floats would pack as float64 and change the hash
    if isinstance(asset, bool) or not isinstance(asset, int) or not 0 <= asset <= _MSGPACK_UINT_MAX:
        raise EncodingError(f"{where}.a must be a non-negative integer, got {asset!r}")

    return {
        "a": asset,
        "b": _expect_bool(order["b"], f"{where}.b"),
        "p": _expect_decimal(order["p"], f"{where}.p"),
        "s": _expect_decimal(order["s"], f"{where}.s"),
        "r": _expect_bool(order["r"], f"{where}.r"),
        "t": _canonical_order_type(order["t"], f"{where}.t"),
    }


def _canonical_order_type(order_type: Any, where: str) -> Dict[str, Any]:
    if not isinstance(order_type, Mapping) or len(order_type) != 1:
        raise EncodingError(f"{where} must be a one-key map (limit or trigger)")

    if "limit" in order_type:
        limit = order_type["limit"]
        if not isinstance(limit, Mapping):
            raise EncodingError(f"{where}.limit must be a mapping")
        _expect_keys(limit, ("tif",), f"{where}.limit")
        tif = limit["tif"]
        if tif not in _TIFS:
            raise EncodingError(f"{where}.limit.tif must be one of {_TIFS}, got {tif!r}")
        return {"limit": {"tif": tif}}

    if "trigger" in order_type:
        trigger = order_type["trigger"]
        if not isinstance(trigger, Mapping):
            raise EncodingError(f"{where}.trigger must be a mapping")
        _expect_keys(trigger, ("isMarket", "triggerPx", "tpsl"), f"{where}.trigger")
        tpsl = trigger["tpsl"]
        if tpsl not in _TPSL:
            raise EncodingError(f"{where}.trigger.tpsl must be 'tp' or 'sl', got {tpsl!r}")
        return {
            "trigger": {
                "isMarket": _expect_bool(trigger["isMarket"], f"{where}.trigger.isMarket"),
                "triggerPx": _expect_decimal(trigger["triggerPx"], f"{where}.trigger.triggerPx"),
                "tpsl": tpsl,
            }
        }

    raise EncodingError(f"{where} has unknown order type {next(iter(order_type))!r}")


def _expect_keys(mapping: Mapping[str, Any], keys: tuple, where: str):
    missing = [key for key in keys if key not in mapping]
    extra = [key for key in mapping if key not in keys]
    if missing or extra:
        raise EncodingError(f"{where} fields mismatch: missing={missing} unexpected={extra}")


def _expect_bool(value: Any, where: str) -> bool:
    if not isinstance(value, bool):
        raise EncodingError(f"{where} must be a boolean, got {value!r}")
    return value


def _expect_str(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise EncodingError(f"{where} must be a string, got {value!r}")
    return value


def _expect_decimal(value: Any, where: str) -> str:
    # "2525.0" and "2525" hash differently; only the canonical form is signed
    text = _expect_str(value, where)
    try:
        canonical = canonical_decimal(text)
    except InputValidationError:
        raise EncodingError(f"{where} is not a decimal string: {value!r}") from None
    if text != canonical or canonical.startswith("-"):
        raise EncodingError(f"{where} must be a canonical non-negative decimal string, got {value!r}")
    return text

"""
Value types that flow through the order pipeline.

All of them are frozen: a pipeline run builds its own instances and nothing
is shared or mutated across requests.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Union

from hl_agent_gateway.utils.config import ORDER_ACTION_TYPE, ORDER_GROUPING
from hl_agent_gateway.utils.enums import AssetClass, TickSource, TimeInForce, TpSl


@dataclass(frozen=True)
class MarketRef:
    symbol: str
    asset_class: AssetClass


@dataclass(frozen=True)
class AssetDescriptor:
    """Resolved instrument: venue identifier plus size precision."""

    symbol: str
    asset_id: int
    size_decimals: int
    asset_class: AssetClass
    price_key: str      # key into the allMids map


@dataclass(frozen=True)
class NormalizedOrder:
    limit_price: str
    size: str
    tick_size: Optional[Decimal]         # None when the price is not tick-based (zero_ioc)
    tick_source: Optional[TickSource]


@dataclass(frozen=True)
class LimitOrderType:
    tif: TimeInForce = TimeInForce.IOC

    def to_wire(self) -> Dict[str, Any]:
        return {"limit": {"tif": self.tif.value}}


@dataclass(frozen=True)
class TriggerOrderType:
    trigger_px: str
    tpsl: TpSl
    is_market: bool = True

    def to_wire(self) -> Dict[str, Any]:
        return {
            "trigger": {
                "isMarket": self.is_market,
                "triggerPx": self.trigger_px,
                "tpsl": self.tpsl.value,
            }
        }


OrderType = Union[LimitOrderType, TriggerOrderType]


@dataclass(frozen=True)
class OrderLine:
    asset_id: int
    is_buy: bool
    limit_price: str
    size: str
    reduce_only: bool
    order_type: OrderType

    def to_wire(self) -> Dict[str, Any]:
        return {
            "a": self.asset_id,
            "b": self.is_buy,
            "p": self.limit_price,
            "s": self.size,
            "r": self.reduce_only,
            "t": self.order_type.to_wire(),
        }


@dataclass(frozen=True)
class TradeAction:
    orders: Tuple[OrderLine, ...]
    grouping: str = ORDER_GROUPING

    @property
    def type(self) -> str:
        return ORDER_ACTION_TYPE

    def to_wire(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "orders": [order.to_wire() for order in self.orders],
            "grouping": self.grouping,
        }


@dataclass(frozen=True)
class SigningContext:
    nonce: int
    vault_address: Optional[str] = None


@dataclass(frozen=True)
class Signature:
    r: str
    s: str
    v: int

    def to_dict(self) -> Dict[str, Any]:
        return {"r": self.r, "s": self.s, "v": self.v}


@dataclass(frozen=True)
class VenueResponse:
    status: str
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def statuses(self) -> list:
        response = self.raw.get("response")
        if not isinstance(response, dict):
            return []
        data = response.get("data")
        if not isinstance(data, dict):
            return []
        statuses = data.get("statuses")
        return statuses if isinstance(statuses, list) else []

"""
Shared enums for the order gateway.

This module defines the enums used across the signing pipeline to ensure
type safety and consistent wire values throughout the codebase.
"""

from enum import Enum


class OrderSide(Enum):
    """Order side enum - buy or sell"""
    BUY = "buy"
    SELL = "sell"

    @property
    def is_buy(self) -> bool:
        return self == OrderSide.BUY

    def __str__(self) -> str:
        return self.value


class AssetClass(Enum):
    """Identifier space an instrument lives in"""
    PERP = "perp"                 # Perpetual contracts (meta.universe index)
    SPOT = "spot"                 # Spot pairs (10000 + spotMeta.universe position)

    def __str__(self) -> str:
        return self.value


class OrderMode(Enum):
    """How the order reaches the book"""
    MARKET_IOC = "market_ioc"           # Limit IOC at a protective price
    TRIGGER_MARKET = "trigger_market"   # Trigger order that fires as market

    def __str__(self) -> str:
        return self.value


class TimeInForce(Enum):
    """Time-in-force values exactly as the venue spells them"""
    GTC = "Gtc"                   # Good till cancelled
    IOC = "Ioc"                   # Immediate or cancel (for market orders)
    ALO = "Alo"                   # Add liquidity only (post-only for makers)

    def __str__(self) -> str:
        return self.value


class TpSl(Enum):
    """Trigger order flavour"""
    TAKE_PROFIT = "tp"
    STOP_LOSS = "sl"

    def __str__(self) -> str:
        return self.value


class SizeType(Enum):
    """Meaning of the caller-supplied amount"""
    NOTIONAL = "notional"         # Quote currency amount, divided by price
    QUANTITY = "quantity"         # Base asset units

    def __str__(self) -> str:
        return self.value


class ClosePriceMode(Enum):
    """Price convention for reduce-only market closes"""
    ZERO_IOC = "zero_ioc"             # IOC at price "0"
    SLIPPAGE_IOC = "slippage_ioc"     # IOC at the protective slippage price

    def __str__(self) -> str:
        return self.value


class TickSource(Enum):
    """Where the tick size used for quantization came from"""
    CALLER = "caller"             # Supplied with the request
    ORDERBOOK = "orderbook"       # Derived from L2 price increments
    HEURISTIC = "heuristic"       # Guessed from price magnitude

    def __str__(self) -> str:
        return self.value

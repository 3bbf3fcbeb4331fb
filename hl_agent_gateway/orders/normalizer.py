"""
Price/size normalization to the venue's decimal-string form.

Every numeric value that ends up in a signed action goes through this
module, so the rounding contracts live in one place:

* size is truncated (ROUND_DOWN) to ``szDecimals``, never rounded up;
* a protective buy price rounds UP to the tick, a protective sell price
  rounds DOWN, so the order never crosses less favorably than requested;
* strings carry no exponent, no trailing zeros and no bare decimal point.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, ROUND_UP, Decimal, InvalidOperation
from typing import Any, Optional, Tuple

from hl_agent_gateway.orders.models import NormalizedOrder
from hl_agent_gateway.utils.config import (
    PERP_MAX_DECIMALS,
    PRICE_SIGNIFICANT_FIGURES,
    SPOT_MAX_DECIMALS,
)
from hl_agent_gateway.utils.enums import (
    AssetClass,
    ClosePriceMode,
    OrderSide,
    SizeType,
    TickSource,
)
from hl_agent_gateway.utils.exceptions import (
    InputValidationError,
    PriceUnavailable,
    ZeroOrderSize,
)
from hl_agent_gateway.utils.logger import get_component_logger

logger = get_component_logger("normalizer")

ZERO_PRICE = "0"


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """Convert a str/int/float/Decimal into a finite Decimal (floats via their repr)."""
    if isinstance(value, bool):
        raise InputValidationError(f"{field} must be numeric, got a boolean")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InputValidationError(f"{field} is not a number: {value!r}")
    if not result.is_finite():
        raise InputValidationError(f"{field} must be finite, got {value!r}")
    return result


def canonical_decimal(value: Any) -> str:
    """
    Canonical decimal string: "2525", "0.4", "0.00000001", never "2.5E+3" or "-0".
    """
    number = to_decimal(value)
    if number == 0:
        return ZERO_PRICE
    return format(number.normalize(), "f")


# ==================== SIZE ====================

def truncate_size(quantity: Decimal, size_decimals: int) -> str:
    """
    Truncate a base-asset quantity to ``size_decimals`` fractional digits.

    Raises:
        ZeroOrderSize: Nothing is left after truncation
    """
    step = Decimal(1).scaleb(-size_decimals)
    truncated = quantity.quantize(step, rounding=ROUND_DOWN)
    if truncated <= 0:
        raise ZeroOrderSize(
            f"Order size {quantity} truncates to zero at {size_decimals} decimals"
        )
    return canonical_decimal(truncated)


def size_from_notional(notional: Any, price: Any, size_decimals: int) -> str:
    """Size for a quote-currency amount at ``price``, truncated to the asset precision."""
    notional_dec = _positive(notional, "notional")
    price_dec = as_reference_price(price)
    return truncate_size(notional_dec / price_dec, size_decimals)


def size_from_quantity(quantity: Any, size_decimals: int) -> str:
    """Raw base-asset quantity truncated to the asset precision."""
    return truncate_size(_positive(quantity, "quantity"), size_decimals)


# ==================== TICK SIZE ====================

def max_price_decimals(size_decimals: int, asset_class: AssetClass) -> int:
    cap = SPOT_MAX_DECIMALS if asset_class == AssetClass.SPOT else PERP_MAX_DECIMALS
    return max(0, cap - size_decimals)


def heuristic_tick_size(price: Any, size_decimals: int, asset_class: AssetClass) -> Decimal:
    """
    Conservative tick guessed from the price magnitude.

    Five significant figures of the price, never finer than the venue's
    decimal cap. Larger prices get coarser ticks: 2500 -> 0.1, 95000 -> 1.
    """
    price_dec = as_reference_price(price)
    magnitude_tick = Decimal(1).scaleb(price_dec.adjusted() - (PRICE_SIGNIFICANT_FIGURES - 1))
    finest_tick = Decimal(1).scaleb(-max_price_decimals(size_decimals, asset_class))
    return max(magnitude_tick, finest_tick)


def resolve_tick_size(
    price: Any,
    size_decimals: int,
    asset_class: AssetClass,
    authoritative: Optional[Any] = None,
    source: TickSource = TickSource.CALLER,
) -> Tuple[Decimal, TickSource]:
    """
    Pick the tick size for quantization.

    Args:
        price: Reference price (used only by the fallback)
        size_decimals: Asset size precision
        asset_class: Perp or spot (decimal caps differ)
        authoritative: Tick size from the caller or the order book, if any
        source: Where ``authoritative`` came from

    Returns:
        (tick_size, tick_source); tick_source is TickSource.HEURISTIC when guessed
    """
    if authoritative is not None:
        tick = _positive(authoritative, "tick_size")
        return tick, source

    tick = heuristic_tick_size(price, size_decimals, asset_class)
    logger.warning(
        f"No authoritative tick size; using heuristic tick {canonical_decimal(tick)} "
        f"for price {canonical_decimal(price)} (szDecimals={size_decimals}, {asset_class})"
    )
    return tick, TickSource.HEURISTIC


def quantize_to_tick(price: Decimal, tick_size: Decimal, rounding: str) -> Decimal:
    return (price / tick_size).quantize(Decimal('1'), rounding=rounding) * tick_size


# ==================== PRICE ====================

def protective_price(reference_price: Any, side: OrderSide, slippage: Any, tick_size: Any) -> str:
    """
    Limit price that caps slippage: buy ref*(1+slip) rounded up, sell ref*(1-slip) rounded down.
    """
    reference = as_reference_price(reference_price)
    slip = to_decimal(slippage, "slippage")
    if not (Decimal(0) <= slip < Decimal(1)):
        raise InputValidationError(f"slippage must be in [0, 1), got {slip}")
    tick = _positive(tick_size, "tick_size")

    if side == OrderSide.BUY:
        rounded = quantize_to_tick(reference * (1 + slip), tick, ROUND_UP)
    else:
        rounded = quantize_to_tick(reference * (1 - slip), tick, ROUND_DOWN)
        if rounded < tick:
            # A sell below one tick would be an invalid zero price
            logger.warning(f"Protective sell price {rounded} below tick {tick}; using one tick")
            rounded = tick

    return canonical_decimal(rounded)


def trigger_price(price: Any, tick_size: Any) -> str:
    """Trigger level snapped to the nearest tick (at least one tick)."""
    tick = _positive(tick_size, "tick_size")
    rounded = quantize_to_tick(_positive(price, "trigger_price"), tick, ROUND_HALF_UP)
    return canonical_decimal(max(rounded, tick))


def normalize(
    amount: Any,
    reference_price: Any,
    size_decimals: int,
    side: OrderSide,
    tick_size: Optional[Any] = None,
    *,
    size_type: SizeType = SizeType.NOTIONAL,
    slippage: Any = Decimal("0.01"),
    asset_class: AssetClass = AssetClass.PERP,
    tick_source: TickSource = TickSource.CALLER,
    close_price_mode: Optional[ClosePriceMode] = None,
) -> NormalizedOrder:
    """
    Turn a raw amount and a reference price into (limit_price, size) strings.

    Args:
        amount: Notional (quote currency) or base quantity, per ``size_type``
        reference_price: Current mid (or trigger) price
        size_decimals: Asset size precision
        side: Order side
        tick_size: Authoritative tick size, or None to fall back to the heuristic
        size_type: How to read ``amount``
        slippage: Protective offset as a fraction (0.01 = 1%)
        asset_class: Perp or spot
        tick_source: Origin of ``tick_size`` when provided
        close_price_mode: For reduce-only market closes; ZERO_IOC prices a sell at "0"
            and skips tick resolution

    Raises:
        ZeroOrderSize: Size truncates to zero
        PriceUnavailable: Reference price missing or not positive
        InputValidationError: Non-numeric or negative inputs, or a ZERO_IOC buy
    """
    if size_type == SizeType.NOTIONAL:
        size = size_from_notional(amount, reference_price, size_decimals)
    else:
        size = size_from_quantity(amount, size_decimals)

    if close_price_mode == ClosePriceMode.ZERO_IOC:
        # Price "0" uses no tick; a buy at 0 could never fill
        if side == OrderSide.BUY:
            raise InputValidationError("zero_ioc close price only applies to sells")
        return NormalizedOrder(limit_price=ZERO_PRICE, size=size, tick_size=None, tick_source=None)

    tick, source = resolve_tick_size(reference_price, size_decimals, asset_class, tick_size, tick_source)
    limit_price = protective_price(reference_price, side, slippage, tick)

    return NormalizedOrder(limit_price=limit_price, size=size, tick_size=tick, tick_source=source)


def as_reference_price(price: Any) -> Decimal:
    if price is None:
        raise PriceUnavailable("No reference price available")
    try:
        price_dec = to_decimal(price, "reference_price")
    except InputValidationError as e:
        raise PriceUnavailable(e.message) from e
    if price_dec <= 0:
        raise PriceUnavailable(f"Reference price must be positive, got {price}")
    return price_dec


def _positive(value: Any, field: str) -> Decimal:
    if value is None:
        raise InputValidationError(f"{field} is required")
    number = to_decimal(value, field)
    if number < 0:
        raise InputValidationError(f"{field} must not be negative, got {value}")
    if number == 0 and field in ("tick_size", "trigger_price"):
        raise InputValidationError(f"{field} must be positive")
    return number

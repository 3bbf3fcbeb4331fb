"""
Order pipeline: intent -> resolve -> normalize -> encode -> hash -> sign -> submit.

One ``OrderIntent`` type covers every handler variant ({perp, spot} x
{market IOC, trigger market}); only resolution and normalization branch on
it. Encoding, hashing, signing and submission are shared.

The nonce is captured once in ``sign_action`` and the same value is hashed,
signed and sent. Metadata and mid prices are fetched concurrently; every
other stage runs in order. Nothing is retried.
"""

import asyncio
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from hl_agent_gateway.connectors.base_exchange import BaseVenueConnector
from hl_agent_gateway.orders import encoder, hasher, normalizer, resolver, signer
from hl_agent_gateway.orders.envelope import UNKNOWN_PRICE, build_envelope, realized_price, submit
from hl_agent_gateway.orders.models import (
    AssetDescriptor,
    LimitOrderType,
    MarketRef,
    NormalizedOrder,
    OrderLine,
    Signature,
    SigningContext,
    TradeAction,
    TriggerOrderType,
)
from hl_agent_gateway.utils.config import GatewayConfig
from hl_agent_gateway.utils.enums import (
    AssetClass,
    ClosePriceMode,
    OrderMode,
    OrderSide,
    SizeType,
    TickSource,
    TimeInForce,
    TpSl,
)
from hl_agent_gateway.utils.exceptions import InputValidationError, PriceUnavailable
from hl_agent_gateway.utils.logger import get_component_logger, short_hex

logger = get_component_logger("pipeline")


@dataclass(frozen=True)
class OrderIntent:
    """What the caller wants traded; validated on construction."""

    symbol: str
    asset_class: AssetClass
    side: OrderSide
    amount: Any
    size_type: SizeType = SizeType.NOTIONAL
    mode: OrderMode = OrderMode.MARKET_IOC
    reduce_only: bool = False
    slippage: Optional[Any] = None
    tick_size: Optional[Any] = None
    trigger_price: Optional[Any] = None
    tpsl: Optional[TpSl] = None
    close_price_mode: Optional[ClosePriceMode] = None

    @property
    def market_ref(self) -> MarketRef:
        return MarketRef(self.symbol, self.asset_class)

    def __post_init__(self):
        if not isinstance(self.symbol, str) or not self.symbol.strip():
            raise InputValidationError("symbol is required")
        if self.amount is None or self.amount == "":
            raise InputValidationError("size is required")
        if self.mode == OrderMode.TRIGGER_MARKET:
            if self.trigger_price is None:
                raise InputValidationError("trigger_price is required for trigger orders")
            if self.tpsl is None:
                raise InputValidationError("tpsl is required for trigger orders")

    @classmethod
    def market(cls, symbol: str, asset_class: AssetClass, side: OrderSide, amount: Any, **kwargs) -> "OrderIntent":
        return cls(symbol, asset_class, side, amount, mode=OrderMode.MARKET_IOC, **kwargs)

    @classmethod
    def trigger(
        cls,
        symbol: str,
        asset_class: AssetClass,
        side: OrderSide,
        amount: Any,
        trigger_price: Any,
        tpsl: TpSl,
        **kwargs,
    ) -> "OrderIntent":
        return cls(
            symbol, asset_class, side, amount,
            mode=OrderMode.TRIGGER_MARKET, trigger_price=trigger_price, tpsl=tpsl, **kwargs,
        )


@dataclass(frozen=True)
class SignedOrder:
    """Everything produced up to (not including) submission."""

    action: Dict[str, Any]
    context: SigningContext
    action_hash: bytes
    signature: Signature
    envelope: Dict[str, Any]
    asset: Optional[AssetDescriptor] = None
    normalized: Optional[NormalizedOrder] = None

    @property
    def nonce(self) -> int:
        return self.context.nonce

    @property
    def tick_source(self) -> Optional[TickSource]:
        return self.normalized.tick_source if self.normalized else None


@dataclass(frozen=True)
class OrderResult:
    accepted: bool
    venue_response: Dict[str, Any]
    realized_price: str
    nonce: int
    envelope: Dict[str, Any] = field(repr=False)
    tick_source: Optional[TickSource] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted": self.accepted,
            "venue_response": self.venue_response,
            "realized_price_or_null": None if self.realized_price == UNKNOWN_PRICE else self.realized_price,
            "nonce": self.nonce,
            "tick_source": str(self.tick_source) if self.tick_source else None,
        }


class OrderPipeline:
    """Runs order intents against one venue connector."""

    def __init__(self, connector: BaseVenueConnector, config: Optional[GatewayConfig] = None):
        self.connector = connector
        self.config = config or GatewayConfig()

    # ==================== MARKET DATA ====================

    async def fetch_market_data(self, asset_class: AssetClass, need_mids: bool = True) -> Tuple[Dict[str, Any], Optional[Dict[str, str]]]:
        """Fetch the asset universe for ``asset_class`` and, concurrently, the mids."""
        get_universe = self.connector.get_meta if asset_class == AssetClass.PERP else self.connector.get_spot_meta
        if not need_mids:
            return await asyncio.to_thread(get_universe), None
        universe, mids = await asyncio.gather(
            asyncio.to_thread(get_universe),
            asyncio.to_thread(self.connector.get_all_mids),
        )
        return universe, mids

    @staticmethod
    def mid_price(asset: AssetDescriptor, mids: Mapping[str, str]) -> Decimal:
        raw = mids.get(asset.price_key) if mids else None
        if raw in (None, ""):
            raise PriceUnavailable(f"No mid price for {asset.symbol} (key {asset.price_key})")
        return normalizer.as_reference_price(raw)

    async def _tick_size(self, intent: OrderIntent, asset: AssetDescriptor) -> Tuple[Optional[Any], TickSource]:
        if intent.tick_size is not None:
            return intent.tick_size, TickSource.CALLER
        if self.config.derive_tick_from_book:
            tick = await asyncio.to_thread(self.connector.get_tick_size_from_book, asset.price_key)
            if tick is not None:
                return tick, TickSource.ORDERBOOK
        return None, TickSource.HEURISTIC

    def _close_mode(self, intent: OrderIntent) -> Optional[ClosePriceMode]:
        if not intent.reduce_only or intent.mode == OrderMode.TRIGGER_MARKET:
            return None
        if intent.close_price_mode is not None:
            return intent.close_price_mode
        # The configured zero_ioc default covers long closes; buy-backs keep the slippage price
        if self.config.close_price_mode == ClosePriceMode.ZERO_IOC and intent.side.is_buy:
            return ClosePriceMode.SLIPPAGE_IOC
        return self.config.close_price_mode

    # ==================== CONSTRUCTION ====================

    async def prepare(self, intent: OrderIntent) -> Tuple[AssetDescriptor, NormalizedOrder, TradeAction]:
        """Resolve and normalize an intent into an unsigned TradeAction."""
        is_trigger = intent.mode == OrderMode.TRIGGER_MARKET
        universe, mids = await self.fetch_market_data(intent.asset_class, need_mids=not is_trigger)

        ref = intent.market_ref
        if ref.asset_class == AssetClass.PERP:
            asset = resolver.resolve(ref.symbol, AssetClass.PERP, meta=universe)
        else:
            asset = resolver.resolve(ref.symbol, AssetClass.SPOT, spot_meta=universe)

        reference = intent.trigger_price if is_trigger else self.mid_price(asset, mids)
        close_mode = self._close_mode(intent)

        if close_mode == ClosePriceMode.ZERO_IOC:
            tick_size, tick_source = None, None
        else:
            tick_size, tick_source = await self._tick_size(intent, asset)

        normalized = normalizer.normalize(
            intent.amount,
            reference,
            asset.size_decimals,
            intent.side,
            tick_size,
            size_type=intent.size_type,
            slippage=intent.slippage if intent.slippage is not None else self.config.default_slippage,
            asset_class=asset.asset_class,
            tick_source=tick_source,
            close_price_mode=close_mode,
        )

        if is_trigger:
            order_type = TriggerOrderType(
                trigger_px=normalizer.trigger_price(intent.trigger_price, normalized.tick_size),
                tpsl=intent.tpsl,
            )
        else:
            order_type = LimitOrderType(TimeInForce.IOC)

        action = TradeAction(orders=(
            OrderLine(
                asset_id=asset.asset_id,
                is_buy=intent.side.is_buy,
                limit_price=normalized.limit_price,
                size=normalized.size,
                reduce_only=intent.reduce_only,
                order_type=order_type,
            ),
        ))
        logger.info(
            f"Prepared {intent.mode} {intent.side} {normalized.size} {asset.symbol} ({asset.asset_class}, "
            f"asset {asset.asset_id}) @ {normalized.limit_price} tick={normalized.tick_size} [{normalized.tick_source}]"
        )
        return asset, normalized, action

    # ==================== SIGNING ====================

    def sign_action(
        self,
        action: Union[TradeAction, Mapping[str, Any]],
        signing_key: signer.SigningKey,
        vault_address: Optional[str] = None,
        nonce: Optional[int] = None,
        is_mainnet: Optional[bool] = None,
    ) -> SignedOrder:
        """
        Encode, hash and sign an action; the nonce is fixed here for the rest of the run.

        ``is_mainnet`` overrides the configured network for this signature only.
        """
        encoded = encoder.encode(action)
        context = SigningContext(
            nonce=nonce if nonce is not None else hasher.get_timestamp_ms(),
            vault_address=vault_address,
        )
        digest = hasher.action_hash(encoded, context.nonce, context.vault_address)
        if is_mainnet is None:
            is_mainnet = self.config.is_mainnet
        signature = signer.sign(digest, signing_key, is_mainnet=is_mainnet)
        body = build_envelope(action, context, signature)
        logger.debug(f"Signed nonce={context.nonce} hash={short_hex(digest)} vault={vault_address}")
        return SignedOrder(
            action=body["action"],
            context=context,
            action_hash=digest,
            signature=signature,
            envelope=body,
        )

    async def build_signed_envelope(
        self,
        intent: OrderIntent,
        signing_key: signer.SigningKey,
        vault_address: Optional[str] = None,
    ) -> SignedOrder:
        """Every stage except submission."""
        # Key checked before any network call
        agent = signer.load_agent(signing_key)
        asset, normalized, action = await self.prepare(intent)
        signed = self.sign_action(action, agent, vault_address)
        return replace(signed, asset=asset, normalized=normalized)

    # ==================== SUBMISSION ====================

    async def place(
        self,
        intent: OrderIntent,
        signing_key: signer.SigningKey,
        vault_address: Optional[str] = None,
    ) -> OrderResult:
        """
        Run the full pipeline and submit once.

        Raises:
            GatewayError subclasses; a VenueRejected is never retried
        """
        signed = await self.build_signed_envelope(intent, signing_key, vault_address)
        response = await asyncio.to_thread(submit, signed.envelope, self.connector)
        price = realized_price(response)
        logger.info(f"Order accepted: {intent.side} {intent.symbol} nonce={signed.nonce} fill={price}")
        return OrderResult(
            accepted=True,
            venue_response=response.raw,
            realized_price=price,
            nonce=signed.nonce,
            envelope=signed.envelope,
            tick_source=signed.tick_source,
        )

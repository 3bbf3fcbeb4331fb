"""
Abstract base class for venue connectors.

This module defines the narrow read/post surface the signing pipeline needs
from a venue: asset universes, mid prices, the L2 book, user state and the
execution endpoint. Connectors never retry a call on their own.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Optional

from hl_agent_gateway.utils.logger import get_component_logger


class BaseVenueConnector(ABC):
    """
    Abstract base class that every venue connector must implement.
    Ensures a consistent interface for the order pipeline.
    """

    def __init__(self, exchange_name: str):
        """
        Initialize base connector.

        Args:
            exchange_name: Name of the venue (e.g. "hyperliquid")
        """
        self.exchange_name = exchange_name
        self.logger = get_component_logger(f"connector.{exchange_name}")

    # ==================== METADATA METHODS ====================

    @abstractmethod
    def get_meta(self) -> Dict[str, Any]:
        """
        Get the perpetual universe.

        Returns:
            {"universe": [{"name": str, "szDecimals": int, ...}, ...]}
            List order defines the perpetual asset identifiers.

        Raises:
            MetadataUnavailable: Request failed
        """
        pass

    @abstractmethod
    def get_spot_meta(self) -> Dict[str, Any]:
        """
        Get the spot token table and pair universe.

        Returns:
            {
                "tokens": [{"name": str, "index": int, "szDecimals": int, ...}],
                "universe": [{"name": str, "index": int, "tokens": [int, int]}]
            }

        Raises:
            MetadataUnavailable: Request failed
        """
        pass

    # ==================== MARKET DATA METHODS ====================

    @abstractmethod
    def get_all_mids(self) -> Dict[str, str]:
        """
        Get current mid prices.

        Returns:
            {symbol_or_@index: mid_price_string}

        Raises:
            PriceUnavailable: Request failed
        """
        pass

    @abstractmethod
    def get_l2_book(self, coin: str) -> Optional[Dict[str, Any]]:
        """
        Get an L2 order book snapshot.

        Args:
            coin: Perp symbol or spot price key ("@107", "PURR/USDC")

        Returns:
            {"levels": [[bids...], [asks...]]} with each level {"px": str, "sz": str, "n": int},
            or None when the venue has no book for the coin

        Raises:
            MetadataUnavailable: Request failed
        """
        pass

    def get_tick_size_from_book(self, coin: str, depth: int = 20) -> Optional[Decimal]:
        """
        Derive the tick size from L2 price increments.

        The smallest gap between adjacent bid levels is taken as the tick.
        A sparse book can only make the result coarser, never finer.

        Args:
            coin: Perp symbol or spot price key
            depth: Number of bid levels to sample

        Returns:
            Tick size, or None when the book has fewer than two distinct bid prices
        """
        book = self.get_l2_book(coin)
        if not book:
            return None

        levels = book.get("levels") or []
        bids = levels[0] if levels else []
        prices = sorted({Decimal(str(level["px"])) for level in bids[:depth]}, reverse=True)
        if len(prices) < 2:
            self.logger.debug(f"Not enough bid levels to derive tick size for {coin}")
            return None

        diffs = [prices[i] - prices[i + 1] for i in range(len(prices) - 1)]
        tick_size = min(diffs).normalize()
        self.logger.debug(f"Derived tick size for {coin} from orderbook: {tick_size}")
        return tick_size

    # ==================== ACCOUNT METHODS ====================

    @abstractmethod
    def get_user_state(self, address: str) -> Dict[str, Any]:
        """
        Get clearinghouse state for an account.

        Args:
            address: Main wallet or vault address

        Returns:
            Raw user state (marginSummary, withdrawable, assetPositions)
        """
        pass

    def get_balance(self, address: str) -> float:
        """
        Get withdrawable USDC for an account.

        Args:
            address: Main wallet or vault address

        Returns:
            Withdrawable balance, never negative
        """
        user_state = self.get_user_state(address)
        if not user_state:
            self.logger.warning(f"No user state for {address}, returning 0")
            return 0.0

        if "withdrawable" in user_state:
            return max(0.0, float(user_state["withdrawable"]))

        margin_summary = user_state.get("marginSummary", {})
        account_value = float(margin_summary.get("accountValue", "0"))
        total_margin_used = float(margin_summary.get("totalMarginUsed", "0"))
        return max(0.0, account_value - total_margin_used)

    # ==================== EXECUTION METHODS ====================

    @abstractmethod
    def post_exchange(self, envelope: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a signed envelope to the execution endpoint. Called exactly once per envelope.

        Args:
            envelope: {"action", "nonce", "signature", "vaultAddress"}

        Returns:
            Raw venue response {"status": "ok"|"err", "response": ...}

        Raises:
            VenueRejected: HTTP-level failure
        """
        pass

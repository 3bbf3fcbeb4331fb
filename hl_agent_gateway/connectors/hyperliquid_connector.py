"""
Hyperliquid venue connector implementing BaseVenueConnector.

This connector wraps the official Hyperliquid Python SDK for transport only:
``Info`` for the information endpoint and ``API.post`` for the execution
endpoint. Encoding, hashing and signing live in ``hl_agent_gateway.orders``;
the SDK never sees the agent key.
"""

from typing import Any, Dict, Optional

import requests
from hyperliquid.api import API
from hyperliquid.info import Info
from hyperliquid.utils import constants
from hyperliquid.utils.error import ClientError, ServerError

from hl_agent_gateway.connectors.base_exchange import BaseVenueConnector
from hl_agent_gateway.utils.exceptions import (
    MetadataUnavailable,
    PriceUnavailable,
    VenueRejected,
)

EXCHANGE_PATH = "/exchange"
INFO_PATH = "/info"

_TRANSPORT_ERRORS = (ClientError, ServerError, requests.RequestException, ValueError)


class HyperliquidConnector(BaseVenueConnector):
    """
    Hyperliquid connector over REST.

    Every call is a single HTTP round trip: no retries, no throttling loop.
    A signed order that is retried blindly may execute twice.
    """

    def __init__(self, base_url: Optional[str] = None):
        """
        Initialize Hyperliquid connector.

        Args:
            base_url: API root (defaults to mainnet)
        """
        super().__init__("hyperliquid")

        self.base_url = base_url or constants.MAINNET_API_URL

        self.info: Optional[Info] = None
        self.api = API(self.base_url)

        self._initialize_sdk()
        self.logger.info(f"Hyperliquid connector initialized for {self.base_url}")

    def _initialize_sdk(self):
        """Initialize the SDK Info client (REST only, no websocket)"""
        try:
            self.info = Info(self.base_url, skip_ws=True)
        except _TRANSPORT_ERRORS as e:
            self.logger.error(f"Failed to initialize Hyperliquid SDK: {e}")
            raise MetadataUnavailable(f"Failed to initialize Hyperliquid info client: {e}") from e

    # ==================== METADATA METHODS ====================

    def get_meta(self) -> Dict[str, Any]:
        try:
            return self.info.meta()
        except _TRANSPORT_ERRORS as e:
            self.logger.error(f"Error fetching perp metadata: {e}")
            raise MetadataUnavailable(f"Failed to fetch perp metadata: {e}") from e

    def get_spot_meta(self) -> Dict[str, Any]:
        try:
            return self.info.spot_meta()
        except _TRANSPORT_ERRORS as e:
            self.logger.error(f"Error fetching spot metadata: {e}")
            raise MetadataUnavailable(f"Failed to fetch spot metadata: {e}") from e

    # ==================== MARKET DATA METHODS ====================

    def get_all_mids(self) -> Dict[str, str]:
        try:
            return self.info.all_mids()
        except _TRANSPORT_ERRORS as e:
            self.logger.error(f"Error fetching mid prices: {e}")
            raise PriceUnavailable(f"Failed to fetch mid prices: {e}") from e

    def get_l2_book(self, coin: str) -> Optional[Dict[str, Any]]:
        # Posted directly so spot keys like "@107" need no SDK name mapping
        try:
            return self.info.post(INFO_PATH, {"type": "l2Book", "coin": coin})
        except _TRANSPORT_ERRORS as e:
            self.logger.error(f"Error fetching L2 book for {coin}: {e}")
            raise MetadataUnavailable(f"Failed to fetch L2 book for {coin}: {e}") from e

    # ==================== ACCOUNT METHODS ====================

    def get_user_state(self, address: str) -> Dict[str, Any]:
        try:
            return self.info.user_state(address)
        except _TRANSPORT_ERRORS as e:
            self.logger.error(f"Error fetching user state for {address}: {e}")
            raise MetadataUnavailable(f"Failed to fetch user state: {e}") from e

    # ==================== EXECUTION METHODS ====================

    def post_exchange(self, envelope: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return self.api.post(EXCHANGE_PATH, envelope)
        except ClientError as e:
            self.logger.error(f"Exchange rejected request: status={e.status_code} message={e.error_message}")
            raise VenueRejected(
                f"Exchange returned HTTP {e.status_code}",
                detail={"status_code": e.status_code, "error": e.error_message, "data": e.error_data},
            ) from e
        except ServerError as e:
            self.logger.error(f"Exchange server error: status={e.status_code}")
            raise VenueRejected(
                f"Exchange returned HTTP {e.status_code}",
                detail={"status_code": e.status_code, "error": e.message},
            ) from e
        except (requests.RequestException, ValueError) as e:
            self.logger.error(f"Exchange request failed: {e}")
            raise VenueRejected(f"Exchange request failed: {e}") from e

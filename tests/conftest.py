"""Shared fixtures for all tests."""

import copy
from typing import Any, Dict, List, Optional

import pytest

from hl_agent_gateway.connectors.base_exchange import BaseVenueConnector
from hl_agent_gateway.orders.pipeline import OrderPipeline
from hl_agent_gateway.utils.config import GatewayConfig

# Hardhat / anvil account #0; public test key, never funded on any venue
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d8bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

MAIN_WALLET = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
VAULT_ADDRESS = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"

PERP_META = {
    "universe": [
        {"name": "BTC", "szDecimals": 5, "maxLeverage": 40},
        {"name": "ETH", "szDecimals": 4, "maxLeverage": 25},
        {"name": "SOL", "szDecimals": 2, "maxLeverage": 20},
        {"name": "DOGE", "szDecimals": 0, "maxLeverage": 10},
    ]
}

SPOT_META = {
    "tokens": [
        {"name": "USDC", "index": 0, "szDecimals": 8, "weiDecimals": 8},
        {"name": "PURR", "index": 1, "szDecimals": 0, "weiDecimals": 5},
        {"name": "HYPE", "index": 150, "szDecimals": 2, "weiDecimals": 8},
        {"name": "UETH", "index": 221, "szDecimals": 4, "weiDecimals": 9},
        {"name": "ORPHAN", "index": 300, "szDecimals": 1, "weiDecimals": 8},
    ],
    "universe": [
        {"name": "PURR/USDC", "index": 0, "tokens": [1, 0]},
        {"name": "@1", "index": 1, "tokens": [2, 0]},
        {"name": "@107", "index": 107, "tokens": [150, 0]},
        {"name": "@151", "index": 151, "tokens": [221, 0]},
    ],
}

ALL_MIDS = {
    "BTC": "95000.5",
    "ETH": "2500",
    "SOL": "150.123",
    "DOGE": "0.1234",
    "PURR/USDC": "0.2",
    "@107": "25.5",
    "@151": "2499.8",
}

OK_FILLED = {
    "status": "ok",
    "response": {
        "type": "order",
        "data": {"statuses": [{"filled": {"totalSz": "0.4", "avgPx": "2501.3", "oid": 77}}]},
    },
}


class FakeConnector(BaseVenueConnector):
    """In-memory venue: canned metadata and book, records every POST."""

    def __init__(
        self,
        meta: Optional[Dict[str, Any]] = None,
        spot_meta: Optional[Dict[str, Any]] = None,
        mids: Optional[Dict[str, str]] = None,
        books: Optional[Dict[str, Any]] = None,
        response: Optional[Dict[str, Any]] = None,
        user_state: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("fake")
        self.meta = copy.deepcopy(PERP_META) if meta is None else meta
        self.spot_meta = copy.deepcopy(SPOT_META) if spot_meta is None else spot_meta
        self.mids = dict(ALL_MIDS) if mids is None else mids
        self.books = books or {}
        self.response = copy.deepcopy(OK_FILLED) if response is None else response
        self.user_state = user_state or {}
        self.posted: List[Dict[str, Any]] = []
        self.calls: List[str] = []

    def get_meta(self):
        self.calls.append("meta")
        return self.meta

    def get_spot_meta(self):
        self.calls.append("spot_meta")
        return self.spot_meta

    def get_all_mids(self):
        self.calls.append("all_mids")
        return self.mids

    def get_l2_book(self, coin):
        self.calls.append(f"l2Book:{coin}")
        return self.books.get(coin)

    def get_user_state(self, address):
        return self.user_state

    def post_exchange(self, envelope):
        self.posted.append(envelope)
        return self.response


def make_book(*bid_prices: str) -> Dict[str, Any]:
    bids = [{"px": px, "sz": "1.0", "n": 1} for px in bid_prices]
    return {"coin": "X", "levels": [bids, []]}


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def config():
    # Heuristic tick unless a test opts into book derivation
    return GatewayConfig(derive_tick_from_book=False)


@pytest.fixture
def pipeline(connector, config):
    return OrderPipeline(connector, config)


@pytest.fixture
def perp_meta():
    return copy.deepcopy(PERP_META)


@pytest.fixture
def spot_meta():
    return copy.deepcopy(SPOT_META)

"""Tests for envelope assembly, submission and response interpretation."""

import pytest

from conftest import OK_FILLED, VAULT_ADDRESS, FakeConnector
from hl_agent_gateway.orders.envelope import (
    UNKNOWN_PRICE,
    build_envelope,
    interpret_response,
    realized_price,
    submit,
)
from hl_agent_gateway.orders.models import Signature, SigningContext
from hl_agent_gateway.utils.exceptions import VenueRejected

ACTION = {
    "type": "order",
    "orders": [{"a": 1, "b": True, "p": "2525", "s": "0.4", "r": False, "t": {"limit": {"tif": "Ioc"}}}],
    "grouping": "na",
}
SIGNATURE = Signature(r="0x" + "11" * 32, s="0x" + "22" * 32, v=27)


def _statuses(*entries):
    return {"status": "ok", "response": {"type": "order", "data": {"statuses": list(entries)}}}


def test_envelope_fields():
    envelope = build_envelope(ACTION, SigningContext(nonce=42), SIGNATURE)
    assert envelope == {
        "action": ACTION,
        "nonce": 42,
        "signature": {"r": "0x" + "11" * 32, "s": "0x" + "22" * 32, "v": 27},
        "vaultAddress": None,
    }


def test_envelope_with_vault():
    envelope = build_envelope(ACTION, SigningContext(nonce=42, vault_address=VAULT_ADDRESS), SIGNATURE)
    assert envelope["vaultAddress"] == VAULT_ADDRESS


def test_envelope_action_is_canonicalized():
    scrambled = {"grouping": "na", "orders": ACTION["orders"], "type": "order"}
    envelope = build_envelope(scrambled, SigningContext(nonce=1), SIGNATURE)
    assert list(envelope["action"]) == ["type", "orders", "grouping"]


def test_submit_posts_exactly_once():
    connector = FakeConnector()
    envelope = build_envelope(ACTION, SigningContext(nonce=42), SIGNATURE)
    response = submit(envelope, connector)
    assert connector.posted == [envelope]
    assert response.status == "ok"


def test_accepted_filled_order():
    response = interpret_response(OK_FILLED)
    assert realized_price(response) == "2501.3"


def test_resting_order_has_unknown_price():
    response = interpret_response(_statuses({"resting": {"oid": 12}}))
    assert realized_price(response) == UNKNOWN_PRICE


def test_realized_price_from_raw_dict():
    assert realized_price({"status": "ok", "response": {"type": "default"}}) == UNKNOWN_PRICE
    assert realized_price(OK_FILLED) == "2501.3"


def test_error_status_is_rejected():
    raw = {"status": "err", "response": "User or API Wallet 0xabc does not exist."}
    with pytest.raises(VenueRejected) as exc:
        interpret_response(raw)
    assert "does not exist" in exc.value.message
    assert exc.value.detail == raw


def test_per_order_error_is_rejected():
    raw = _statuses({"error": "Order could not immediately match against any resting orders."})
    with pytest.raises(VenueRejected) as exc:
        interpret_response(raw)
    assert "immediately match" in exc.value.message
    assert exc.value.to_dict()["detail"] == raw


@pytest.mark.parametrize("raw", [None, "ok", ["ok"], {}])
def test_malformed_response_is_rejected(raw):
    with pytest.raises(VenueRejected):
        interpret_response(raw)

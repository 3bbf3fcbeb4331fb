"""Tests for the hlgw command line."""

import asyncio
import json
from unittest.mock import patch

import pytest

from conftest import MAIN_WALLET, TEST_PRIVATE_KEY, FakeConnector
from hl_agent_gateway import cli


@pytest.fixture(autouse=True)
def credentials(monkeypatch):
    for name in ("HLGW_NETWORK", "HLGW_BASE_URL", "HLGW_DERIVE_TICK_FROM_BOOK", "HL_VAULT_ADDRESS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HL_AGENT_KEY", TEST_PRIVATE_KEY)
    monkeypatch.setenv("HL_MAIN_WALLET", MAIN_WALLET)
    monkeypatch.setenv("HLGW_DERIVE_TICK_FROM_BOOK", "false")


def _main(*argv):
    return asyncio.run(cli.main(["--env-file", "", *argv]))


def test_parse_open_arguments():
    args = cli.parse_arguments(["open", "ETH", "--notional", "1000", "--asset-class", "spot"])
    assert args.command == "open"
    assert args.symbol == "ETH"
    assert args.notional == "1000"
    assert args.asset_class == "spot"


def test_amount_is_required():
    with pytest.raises(SystemExit):
        cli.parse_arguments(["open", "ETH"])


def test_build_request_trigger():
    args = cli.parse_arguments(["close", "ETH", "--size", "0.4", "--trigger-price", "2300", "--tpsl", "sl",
                                "--close-mode", "zero_ioc"])
    request = cli.build_request(args, {"agent_key": "k", "main_wallet": MAIN_WALLET, "vault_address": None})
    assert request["size"] == "0.4"
    assert request["order_mode"] == "trigger_market"
    assert request["tpsl"] == "sl"
    assert request["close_price_mode"] == "zero_ioc"


def test_open_submits(capsys):
    connector = FakeConnector()
    with patch.object(cli, "HyperliquidConnector", return_value=connector):
        assert _main("open", "ETH", "--notional", "1000") == 0
    assert len(connector.posted) == 1
    assert TEST_PRIVATE_KEY not in capsys.readouterr().out


def test_dry_run_posts_nothing():
    connector = FakeConnector()
    with patch.object(cli, "HyperliquidConnector", return_value=connector):
        assert _main("open", "ETH", "--notional", "1000", "--dry-run") == 0
    assert connector.posted == []


def test_error_exit_code():
    with patch.object(cli, "HyperliquidConnector", return_value=FakeConnector()):
        assert _main("close", "NOPE", "--size", "1") == 1


def test_balance():
    connector = FakeConnector(user_state={"withdrawable": "42.5"})
    with patch.object(cli, "HyperliquidConnector", return_value=connector):
        assert _main("balance") == 0


def test_sign_from_file(tmp_path):
    action_file = tmp_path / "action.json"
    action_file.write_text(json.dumps({
        "type": "order",
        "orders": [{"a": 1, "b": True, "p": "2525", "s": "0.4", "r": False, "t": {"limit": {"tif": "Ioc"}}}],
        "grouping": "na",
    }))
    assert _main("sign", "--action-file", str(action_file), "--nonce", "42") == 0


def test_sign_missing_file(tmp_path):
    assert _main("sign", "--action-file", str(tmp_path / "missing.json")) == 1


def test_missing_credentials(monkeypatch):
    monkeypatch.delenv("HL_AGENT_KEY")
    assert _main("balance") == 1

"""
Command line entry point for the order gateway.

Credentials come from the environment (or a .env file):
    HL_AGENT_KEY       agent private key
    HL_MAIN_WALLET     main account address
    HL_VAULT_ADDRESS   optional vault / sub-account

Usage:
    hlgw open ETH --notional 1000
    hlgw open HYPE --asset-class spot --size 2.5 --dry-run
    hlgw close ETH --size 0.4 --close-mode zero_ioc
    hlgw sign --action-file action.json
    hlgw balance
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hl_agent_gateway import __version__
from hl_agent_gateway.connectors.hyperliquid_connector import HyperliquidConnector
from hl_agent_gateway.handlers import handle_close, handle_open, handle_sign, intent_from_request
from hl_agent_gateway.orders.pipeline import OrderPipeline
from hl_agent_gateway.utils.config import GatewayConfig, get_agent_credentials, load_config
from hl_agent_gateway.utils.enums import OrderSide
from hl_agent_gateway.utils.exceptions import GatewayError
from hl_agent_gateway.utils.logger import set_global_log_level

console = Console()


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog="hlgw",
        description="Sign and submit Hyperliquid orders with an agent key",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", default=None, help="JSON configuration file")
    parser.add_argument("--env-file", default=".env", help="Environment file with credentials (default: .env)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("open", "Open a position"), ("close", "Close a position (reduce-only)")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("symbol", help="Market symbol, e.g. ETH")
        amount = sub.add_mutually_exclusive_group(required=True)
        amount.add_argument("--notional", help="Quote currency amount (USDC)")
        amount.add_argument("--size", help="Base asset quantity")
        sub.add_argument("--side", choices=["buy", "sell"], default=None)
        sub.add_argument("--asset-class", choices=["perp", "spot"], default="perp")
        sub.add_argument("--slippage", default=None, help="Protective offset, e.g. 0.01 for 1%%")
        sub.add_argument("--tick-size", default=None, help="Authoritative tick size")
        sub.add_argument("--trigger-price", default=None, help="Place a trigger-market order at this level")
        sub.add_argument("--tpsl", choices=["tp", "sl"], default=None)
        sub.add_argument("--dry-run", action="store_true", help="Build and sign, do not submit")
        if name == "close":
            sub.add_argument("--close-mode", choices=["zero_ioc", "slippage_ioc"], default=None)

    sign = subparsers.add_parser("sign", help="Sign an order action from a JSON file")
    sign.add_argument("--action-file", required=True)
    sign.add_argument("--nonce", type=int, default=None)

    subparsers.add_parser("balance", help="Show withdrawable USDC for the main wallet")

    return parser.parse_args(argv)


def build_request(args: argparse.Namespace, credentials: Dict[str, Any]) -> Dict[str, Any]:
    request = {
        "market": args.symbol,
        "main_wallet": credentials["main_wallet"],
        "agent_key": credentials["agent_key"],
        "vault_address": credentials["vault_address"],
        "asset_class": args.asset_class,
        "side": args.side,
        "slippage": args.slippage,
        "tick_size": args.tick_size,
    }
    if args.notional is not None:
        request["notional"] = args.notional
    else:
        request["size"] = args.size
    if args.trigger_price is not None:
        request.update(order_mode="trigger_market", trigger_price=args.trigger_price, tpsl=args.tpsl)
    if getattr(args, "close_mode", None):
        request["close_price_mode"] = args.close_mode
    return request


def render_result(title: str, result: Dict[str, Any]) -> None:
    if not result.get("success"):
        error = result.get("error", {})
        console.print(Panel(f"[bold]{error.get('kind')}[/bold]\n{error.get('message')}",
                            title=f"{title} failed", border_style="red"))
        return

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    for key, value in result.items():
        if key == "success":
            continue
        text = json.dumps(value) if isinstance(value, (dict, list)) else str(value)
        table.add_row(key, text)
    console.print(table)


async def run_dry(args: argparse.Namespace, pipeline: OrderPipeline, credentials: Dict[str, Any]) -> Dict[str, Any]:
    request = build_request(args, credentials)
    default_side = OrderSide.BUY if args.command == "open" else OrderSide.SELL
    try:
        intent = intent_from_request(request, default_side, reduce_only=args.command == "close")
        signed = await pipeline.build_signed_envelope(intent, credentials["agent_key"], credentials["vault_address"])
    except GatewayError as e:
        return {"success": False, "error": e.to_dict()}
    return {
        "success": True,
        "nonce": signed.nonce,
        "action_hash": "0x" + signed.action_hash.hex(),
        "tick_source": str(signed.tick_source) if signed.tick_source else None,
        "envelope": signed.envelope,
    }


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)

    try:
        config: GatewayConfig = load_config(args.config, env_file=args.env_file)
        set_global_log_level(config.log_level)
        credentials = get_agent_credentials()
        if args.command == "sign":
            pipeline = OrderPipeline(connector=None, config=config)
        else:
            pipeline = OrderPipeline(HyperliquidConnector(config.base_url), config)
    except GatewayError as e:
        render_result(args.command, {"success": False, "error": e.to_dict()})
        return 1

    if args.command == "balance":
        try:
            balance = await asyncio.to_thread(pipeline.connector.get_balance, credentials["main_wallet"])
        except GatewayError as e:
            result = {"success": False, "error": e.to_dict()}
        else:
            result = {"success": True, "address": credentials["main_wallet"], "withdrawable_usdc": balance}
    elif args.command == "sign":
        try:
            with open(args.action_file, "r") as f:
                action = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            render_result(args.command, {
                "success": False,
                "error": {"kind": "InputValidationError", "message": f"Cannot read action file: {e}"},
            })
            return 1
        result = handle_sign({
            "agent_key": credentials["agent_key"],
            "action": action,
            "vault_address": credentials["vault_address"],
            "nonce": args.nonce,
        }, pipeline)
    elif args.dry_run:
        result = await run_dry(args, pipeline, credentials)
    elif args.command == "open":
        result = await handle_open(build_request(args, credentials), pipeline)
    else:
        result = await handle_close(build_request(args, credentials), pipeline)

    render_result(args.command, result)
    return 0 if result.get("success") else 1


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()

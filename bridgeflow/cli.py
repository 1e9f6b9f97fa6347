#!/usr/bin/env python3
"""Simple CLI for checking Garden quotes, order progress and relay health"""

import argparse
import asyncio
from typing import Optional

import httpx

from .config import settings
from .core.bridge.models import OrderProgress
from .core.bridge.progress import derive_deposit_progress, derive_withdraw_progress
from .core.bridge.constants import STARKNET_BTC_TOKENS
from .core.recovery.errors import BridgeError
from .logging_config import setup_logging
from .providers.garden import GardenClient
from .providers.relay import create_relay_client

SATS_PER_BTC = 100_000_000


def format_btc(sats: int) -> str:
    return f"{sats / SATS_PER_BTC:.8f} BTC"


def print_progress(order_id: str, progress: OrderProgress):
    """Pretty print order progress"""
    icon = {"complete": "✅", "refunded": "↩️ "}.get(progress.status.value, "⏳")
    print(f"\n{icon} Order {order_id}")
    print("=" * 50)
    print(f"Status: {progress.status.value}")
    if progress.required_confirmations:
        print(f"Confirmations: {progress.confirmations}/{progress.required_confirmations}")
    if progress.estimated_time_remaining:
        print(f"ETA: ~{progress.estimated_time_remaining // 60} min")
    if progress.source_tx_hash:
        print(f"Source tx: {progress.source_tx_hash}")
    if progress.destination_tx_hash:
        print(f"Destination tx: {progress.destination_tx_hash}")


async def cli_quote(amount: int, direction: str = "deposit", network: Optional[str] = None):
    """CLI command to quote a deposit (BTC -> Starknet) or withdrawal"""
    client = GardenClient(network)
    print(f"🔍 Quoting {direction} of {format_btc(amount)} on {client.network}...")

    assets = client.assets
    if direction == "deposit":
        from_asset, to_asset, receive_label = assets["btc"], assets["wbtc"], "wBTC"
        token = STARKNET_BTC_TOKENS[client.network]["wBTC"]
    else:
        from_asset, to_asset, receive_label = assets["wbtc"], assets["btc"], "BTC"
        token = assets["btc"]

    try:
        quotes = await client.get_quote(from_asset, to_asset, amount, queue_on_network_error=False)
        if not quotes:
            print("❌ No quotes available for this amount")
            return
        best = quotes[0]
        print(f"\nYou receive: {format_btc(int(best.destination.amount))} ({receive_label})")
        print(f"Fee:         {format_btc(int(best.fee))}")
        print(f"ETA:         ~{best.estimated_time // 60} min")
        print(f"Receive:     {token}")
        if len(quotes) > 1:
            print(f"({len(quotes)} solver quotes, showing the best)")
    except BridgeError as e:
        print(f"❌ Error: {e.message}")
    except httpx.TransportError as e:
        print(f"❌ Garden unreachable: {e}")
    finally:
        await client.aclose()


async def cli_status(order_id: str, direction: str = "deposit", network: Optional[str] = None, watch: bool = False):
    """CLI command to show (or follow) order progress"""
    derive = derive_deposit_progress if direction == "deposit" else derive_withdraw_progress
    client = GardenClient(network)

    try:
        while True:
            try:
                status = await client.get_order_status(order_id)
            except BridgeError as e:
                print(f"❌ Error: {e.message}")
                return
            except httpx.TransportError as e:
                print(f"❌ Garden unreachable: {e}")
                return
            progress = derive(status)
            print_progress(order_id, progress)
            if not watch or progress.is_terminal:
                return
            await asyncio.sleep(settings.poll_interval_seconds)
    finally:
        await client.aclose()


async def cli_relay_health():
    """CLI command to check the configured relay"""
    try:
        relay = create_relay_client()
    except BridgeError as e:
        print(f"❌ Error: {e.message}")
        return

    if relay is None:
        print("⚠️  No relay configured (set RELAY_URL)")
        return

    status = await relay.get_status()
    icon = "✅" if status.healthy else "❌"
    print(f"{icon} Relay {relay.base_url}")
    if status.relayer_balance is not None:
        print(f"   Relayer balance: {status.relayer_balance}")
    if status.pending_txs is not None:
        print(f"   Pending txs: {status.pending_txs}")
    if status.uptime is not None:
        print(f"   Uptime: {status.uptime:.0f}s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bridgeflow CLI")
    parser.add_argument("--network", choices=["sepolia", "mainnet"], help="Garden network (default: from settings)")
    subparsers = parser.add_subparsers(dest="command")

    quote_parser = subparsers.add_parser("quote", help="Quote a deposit or withdrawal")
    quote_parser.add_argument("amount", type=int, help="Amount in satoshis")
    quote_parser.add_argument("--direction", choices=["deposit", "withdraw"], default="deposit")

    status_parser = subparsers.add_parser("status", help="Show order progress")
    status_parser.add_argument("order_id", help="Garden order id")
    status_parser.add_argument("--direction", choices=["deposit", "withdraw"], default="deposit")
    status_parser.add_argument("--watch", action="store_true", help="Keep polling until the order settles")

    subparsers.add_parser("relay-health", help="Check the gas-sponsoring relay")

    return parser


async def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    if args.command == "quote":
        if args.amount <= 0:
            parser.error("amount must be a positive number of satoshis")
        await cli_quote(args.amount, args.direction, args.network)

    elif args.command == "status":
        await cli_status(args.order_id, args.direction, args.network, args.watch)

    elif args.command == "relay-health":
        await cli_relay_health()


def run():
    setup_logging()
    asyncio.run(main())


if __name__ == "__main__":
    run()

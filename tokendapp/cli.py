"""Command-line interface for the token dApp controller."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .chains.evm import JsonRpcClient, RpcContractTransport, RpcWalletProvider
from .config import AppConfig, load_config
from .errors import TokenDAppError
from .logging_setup import configure_logging
from .notifications import ConsoleView, format_view
from .services import DAppContext, Orchestrator


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="tokendapp",
        description="Interact with an ERC-20 token through a wallet endpoint",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: ./config.yaml or built-in networks)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--network",
        default=None,
        help="Network key to use (default: config default_network)",
    )
    parser.add_argument(
        "--contract",
        default=None,
        help="Token contract address (overrides the network default)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("networks", help="List configured networks")
    sub.add_parser("info", help="Show token info and wallet balance")

    balance = sub.add_parser("balance", help="Token balance of an address")
    balance.add_argument("address", nargs="?", default=None, help="Holder (default: wallet)")

    allowance = sub.add_parser("allowance", help="Allowance granted by the wallet")
    allowance.add_argument("spender")

    transfer = sub.add_parser("transfer", help="Transfer tokens")
    transfer.add_argument("to")
    transfer.add_argument("amount")

    approve = sub.add_parser("approve", help="Approve a spender")
    approve.add_argument("spender")
    approve.add_argument("amount")

    transfer_from = sub.add_parser("transfer-from", help="Spend an allowance")
    transfer_from.add_argument("sender")
    transfer_from.add_argument("to")
    transfer_from.add_argument("amount")

    burn = sub.add_parser("burn", help="Burn tokens from the wallet")
    burn.add_argument("amount")

    sub.add_parser("watch", help="Stay connected and print updates on events")

    return parser


def _print_networks(config: AppConfig) -> None:
    for key, network in config.networks.items():
        marker = "*" if key == config.default_network else " "
        contract = config.default_contract(key) or "-"
        print(f"{marker} {key:<12} {network.chain_id:<10} {network.name:<20} {contract}")


async def _dispatch(args: argparse.Namespace, orchestrator: Orchestrator) -> None:
    binding = orchestrator.context.binding

    if args.command == "info":
        await orchestrator.refresh()
    elif args.command == "balance":
        if args.address:
            balance = await binding.get_balance(args.address)
            symbol = orchestrator.token.symbol if orchestrator.token else ""
            print(f"{args.address}: {balance} {symbol}".rstrip())
            return
        await orchestrator.refresh()
    elif args.command == "allowance":
        await orchestrator.check_allowance(args.spender)
    elif args.command == "transfer":
        await orchestrator.transfer(args.to, args.amount)
    elif args.command == "approve":
        await orchestrator.approve(args.spender, args.amount)
    elif args.command == "transfer-from":
        await orchestrator.transfer_from(args.sender, args.to, args.amount)
    elif args.command == "burn":
        await orchestrator.burn(args.amount)
    elif args.command == "watch":
        await orchestrator.refresh()
        while True:
            await asyncio.sleep(3600)

    print(format_view(orchestrator.view_state()))


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command; returns the process exit code."""
    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "networks":
        _print_networks(config)
        return 0

    provider = RpcWalletProvider(JsonRpcClient(config.provider), config.provider.poll_interval)
    transport = RpcContractTransport(
        provider,
        receipt_timeout=config.transactions.receipt_timeout,
        receipt_poll_interval=config.transactions.poll_interval,
        event_poll_interval=config.events.poll_interval,
    )

    try:
        context = DAppContext.create(config, provider, transport, args.network)
        view = ConsoleView(show_refresh=args.command == "watch")
        orchestrator = Orchestrator(context, config, [view])

        await orchestrator.connect()
        if args.contract:
            await orchestrator.load_contract(args.contract)
        await _dispatch(args, orchestrator)
    except TokenDAppError as e:
        print(f"Error [{e.kind.value}]: {e.message}", file=sys.stderr)
        return 1
    finally:
        await provider.close()
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        sys.exit(asyncio.run(_run(args)))
    except KeyboardInterrupt:
        sys.exit(0)

"""Command-line interface for the lending pool."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .amounts import (
    format_health_factor,
    format_percentage,
    format_token_amount,
    format_units,
)
from .config import AppConfig, load_config
from .errors import LendingError
from .logging_setup import configure_logging
from .models import ACTIONS
from .services import AccountService, HealthMonitor, PoolContext, build_pool


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="simple-lending",
        description="Single-asset collateralized lending pool",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("pool", help="Show pool totals and rates")

    position_parser = sub.add_parser("position", help="Show one account's position")
    position_parser.add_argument("account", help="Account label or address")

    events_parser = sub.add_parser("events", help="List pool activity, newest first")
    events_parser.add_argument("--account", default=None, help="Only this account")
    events_parser.add_argument("--limit", type=int, default=None, help="Max rows")

    exec_parser = sub.add_parser("exec", help="Run one operation on the seeded pool")
    exec_parser.add_argument("action", choices=ACTIONS)
    exec_parser.add_argument("account", help="Account label or address")
    exec_parser.add_argument("amount", help="Amount in whole tokens, e.g. 12.5")

    sub.add_parser(
        "check", help="Single health check with alerts; the activity log lists the genesis replay"
    )
    sub.add_parser("report", help="Generate daily pool report")

    monitor_parser = sub.add_parser(
        "monitor",
        help="Continuous monitoring loop over the seeded pool; it only changes if "
        "something else in this process drives the ledger",
    )
    monitor_parser.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Check interval in minutes (overrides config)",
    )

    return parser


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _print_pool(ctx: PoolContext, symbol: str) -> None:
    info = ctx.ledger.get_pool_info()
    print(f"Total Supply:  {format_token_amount(info.total_supply, ctx.decimals)} {symbol}")
    print(f"Total Borrow:  {format_token_amount(info.total_borrow, ctx.decimals)} {symbol}")
    print(f"Liquidity:     {format_token_amount(info.free_liquidity, ctx.decimals)} {symbol}")
    print(f"Utilization:   {format_percentage(info.utilization_rate)}")
    print(f"Supply Rate:   {format_percentage(info.supply_rate)}")
    print(f"Borrow Rate:   {format_percentage(info.borrow_rate)}")


def _print_position(ctx: PoolContext, account: str, symbol: str) -> None:
    summary = AccountService(ctx.ledger).summary(ctx.resolve(account))
    pos = summary.position

    def amount(value: int) -> str:
        return f"{format_units(value, ctx.decimals)} {symbol}"

    print(f"Account:       {account} ({summary.user})")
    print(f"Wallet:        {amount(ctx.token.balance_of(summary.user))}")
    print(f"Supplied:      {amount(pos.supplied)}")
    print(f"Borrowed:      {amount(pos.borrowed)}")
    print(f"Collateral:    {amount(pos.collateral_value)}")
    print(f"Health Factor: {format_health_factor(pos.health_factor)} ({summary.status.value})")
    cap = " (limited by pool cap)" if summary.withdraw_limited_by_pool else ""
    print(f"Max Withdraw:  {amount(summary.withdrawable)}{cap}")
    cap = " (limited by pool cap)" if summary.borrow_limited_by_pool else ""
    print(f"Max Borrow:    {amount(summary.borrowable)}{cap}")


def _print_events(ctx: PoolContext, account: str | None, limit: int | None, symbol: str) -> None:
    user = ctx.resolve(account) if account else None
    events = ctx.bus.history(user=user, limit=limit)
    if not events:
        print("No activity.")
        return
    for no, event in enumerate(events, start=1):
        print(
            f"{no:>3}  {event.event_type.value:<9}  {event.user}  "
            f"{format_units(event.amount, ctx.decimals)} {symbol}  t={event.timestamp}"
        )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


async def _run_monitor(args: argparse.Namespace, config: AppConfig, ctx: PoolContext) -> None:
    monitor = HealthMonitor(config, ctx.ledger)
    monitor.replay_history()
    if args.command == "check":
        await monitor.check_and_alert()
    elif args.command == "report":
        await monitor.generate_daily_report()
    else:
        await monitor.run_continuous(args.interval)


def _run(args: argparse.Namespace) -> int:
    """Execute the selected command; return the process exit code."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    ctx = build_pool(config)
    symbol = config.pool.asset_symbol

    if args.command == "pool":
        _print_pool(ctx, symbol)
    elif args.command == "position":
        _print_position(ctx, args.account, symbol)
    elif args.command == "events":
        _print_events(ctx, args.account, args.limit, symbol)
    elif args.command == "exec":
        try:
            amount = ctx.to_units(args.amount)
            event = ctx.execute(args.action, args.account, amount)
        except LendingError as e:
            print(f"{args.action} failed [{e.code}]: {e.message}", file=sys.stderr)
            return 2
        print(f"{event.event_type.value} {format_units(event.amount, ctx.decimals)} {symbol}")
        _print_position(ctx, args.account, symbol)
    elif args.command in ("check", "report", "monitor"):
        asyncio.run(_run_monitor(args, config, ctx))
    else:
        build_parser().print_help()
        return 1
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(_run(args))

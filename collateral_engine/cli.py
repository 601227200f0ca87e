"""Command-line interface for inspecting engine configuration and prices."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import load_config
from .custody import InMemoryCustody
from .errors import OracleError
from .logging_setup import configure_logging
from .models import PRICE_DECIMALS
from .services import CollateralEngine


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="collateral-engine",
        description="Collateral and liquidation engine tools",
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

    price_parser = sub.add_parser("price", help="Resolve the current price of an asset")
    price_parser.add_argument("asset", help="Price feed asset symbol")

    sub.add_parser("feeds", help="Show freshness of every configured price feed")
    sub.add_parser("collaterals", help="Show configured collateral parameters")

    return parser


def _format_price(price: int) -> str:
    return f"${price / 10**PRICE_DECIMALS:,.4f}"


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command and return the process exit code."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    engine = CollateralEngine.from_config(config, InMemoryCustody())

    if args.command == "price":
        try:
            price, timestamp = await engine.oracle.get_price(args.asset)
        except OracleError as e:
            print(f"{args.asset}: {e}")
            return 1
        print(f"{args.asset}: {_format_price(price)} (updated {timestamp})")
    elif args.command == "feeds":
        for feed in engine.oracle.feeds():
            fresh = await engine.oracle.is_price_fresh(feed.asset)
            print(
                f"{feed.asset:<10} heartbeat={feed.heartbeat}s "
                f"active={'yes' if feed.is_active else 'no'} "
                f"fresh={'yes' if fresh else 'NO'}"
            )
    elif args.command == "collaterals":
        for asset in engine.registry.assets():
            cfg = engine.registry.get(asset)
            print(
                f"{asset:<10} ratio={cfg.collateral_ratio / 100:.2f}% "
                f"liquidation={cfg.liquidation_threshold / 100:.2f}% "
                f"price_source={cfg.price_source} "
                f"active={'yes' if cfg.is_active else 'no'}"
            )
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))

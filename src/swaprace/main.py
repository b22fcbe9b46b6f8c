"""Command line entry point.

    swaprace quote --sell ETH --buy 0xA0b8... --amount 1.0 --chain 1
    swaprace serve
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from decimal import Decimal
from typing import Optional

import uvicorn

from swaprace.config import Settings, get_settings
from swaprace.models import (
    NATIVE_TOKEN_ADDRESS,
    ZERO_ADDRESS,
    AggregationResult,
    SwapRequest,
    Token,
    to_base_units,
)
from swaprace.registry import LiFiRegistry
from swaprace.routing.factory import create_aggregator

logger = logging.getLogger(__name__)

NATIVE_ALIASES = {"eth", "native", "bnb", "matic", "pol", "avax"}


def configure_logging(settings: Settings) -> None:
    if settings.debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def resolve_token(
    value: str,
    chain_id: int,
    decimals: Optional[int],
    registry: LiFiRegistry,
) -> Token:
    """Resolve a CLI token argument (address, native alias or symbol)."""
    if value.lower() in NATIVE_ALIASES:
        return Token(symbol=value.upper(), address=NATIVE_TOKEN_ADDRESS, decimals=decimals or 18)

    if value.lower().startswith("0x"):
        if decimals is None:
            token = await registry.find_token(chain_id, value)
            decimals = token.decimals if token else 18
        return Token(symbol=value[:10], address=value, decimals=decimals)

    token = await registry.find_token(chain_id, value)
    if token is None:
        raise ValueError(f"Unknown token '{value}' on chain {chain_id}")
    if decimals is not None:
        token = replace(token, decimals=decimals)
    return token


def format_quotes(result: AggregationResult, buy: Token) -> str:
    lines = [f"{'PROVIDER':<14} {'OUTPUT':<22} {'GAS USD':>10} {'NET USD':>12}"]
    for quote in result.quotes:
        if not quote.is_available:
            lines.append(f"{quote.provider:<14} error: {quote.error}")
            continue
        marker = " *" if quote.is_best else ""
        lines.append(
            f"{quote.provider:<14} {quote.output_display:>15.6f} {buy.symbol[:6]:<6} "
            f"{quote.gas_cost_usd:>10.2f} {quote.net_value_usd:>12.2f}{marker}"
        )
    if result.error:
        lines.append(result.error)
    return "\n".join(lines)


async def run_quote(args: argparse.Namespace, settings: Settings) -> int:
    registry = LiFiRegistry(api_key=settings.lifi_api_key or None, base_url=settings.lifi_api_url)
    try:
        sell = await resolve_token(args.sell, args.chain, args.sell_decimals, registry)
        buy = await resolve_token(args.buy, args.chain, args.buy_decimals, registry)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    amount = to_base_units(args.amount, sell.decimals)
    if amount is None:
        print(f"Error: invalid amount '{args.amount}'", file=sys.stderr)
        return 2

    slippage = args.slippage if args.slippage is not None else settings.default_slippage_percent
    request = SwapRequest(
        sell_token=sell.address,
        buy_token=buy.address,
        amount=str(amount),
        chain_id=args.chain,
        user_address=args.user or ZERO_ADDRESS,
        slippage=Decimal(str(slippage)),
        buy_token_decimals=buy.decimals,
    )

    aggregator = create_aggregator(settings)
    result = await aggregator.get_all_quotes(request)
    print(f"{args.amount} {sell.symbol} -> {buy.symbol} on chain {args.chain}")
    print(format_quotes(result, buy))
    return 0 if result.best_quote else 1


def run_server(settings: Settings) -> None:
    from swaprace.web.app import create_app

    logger.info(f"Starting API server on {settings.api_host}:{settings.api_port}")
    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
        log_level="debug" if settings.debug else "info",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="swaprace", description="Multi-provider swap quotes")
    parser.add_argument("--simulated", action="store_true", help="Use simulated providers")
    sub = parser.add_subparsers(dest="command", required=True)

    quote = sub.add_parser("quote", help="Print ranked quotes for a trade")
    quote.add_argument("--sell", required=True, help="Sell token address, symbol or ETH")
    quote.add_argument("--buy", required=True, help="Buy token address, symbol or ETH")
    quote.add_argument("--amount", required=True, help="Sell amount, e.g. 1.5")
    quote.add_argument("--chain", type=int, default=1, help="Chain id")
    quote.add_argument("--slippage", type=float, default=None, help="Slippage in percent")
    quote.add_argument("--user", default=None, help="Taker address")
    quote.add_argument("--sell-decimals", type=int, default=None, help="Override sell token decimals")
    quote.add_argument("--buy-decimals", type=int, default=None, help="Override buy token decimals")

    sub.add_parser("serve", help="Run the HTTP API")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    if args.simulated:
        settings = settings.model_copy(update={"simulated_mode": True})
    configure_logging(settings)

    if args.command == "serve":
        run_server(settings)
        return 0
    return asyncio.run(run_quote(args, settings))


if __name__ == "__main__":
    sys.exit(main())

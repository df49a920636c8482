#!/usr/bin/env python3
"""Print a quote for a token pair.

Usage:
    # In-memory demo market
    python scripts/quote.py WETH USDC 1000000000000000000

    # Against a node, validated against the oracle
    python scripts/quote.py WETH USDC 1000000000000000000 \\
        --mode executable --rpc-url https://eth.llamarpc.com
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import structlog

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from aggregator import constants as c  # noqa: E402
from aggregator.chain.memory import DEMO_TOKEN, demo_market  # noqa: E402
from aggregator.config import mainnet_config  # noqa: E402
from aggregator.engine import QuoteEngine, build_engine  # noqa: E402
from aggregator.errors import AggregatorError  # noqa: E402
from aggregator.models.api import QuoteResponse  # noqa: E402
from aggregator.models.types import normalize_address  # noqa: E402
from aggregator.slippage import SlippagePolicy, SwapFinder  # noqa: E402

logger = structlog.get_logger()

SYMBOLS = {
    "WETH": c.WETH,
    "WBTC": c.WBTC,
    "USDC": c.USDC,
    "USDT": c.USDT,
    "DAI": c.DAI,
    "DEMO": DEMO_TOKEN,
}


def resolve_token(value: str) -> str:
    """Symbol or address -> normalized address."""
    symbol = SYMBOLS.get(value.upper())
    if symbol is not None:
        return symbol
    return normalize_address(value, validate=True)


def build(args: argparse.Namespace) -> QuoteEngine:
    config = mainnet_config()
    if args.rpc_url:
        from aggregator.amm.concentrated import StateTickSimulator
        from aggregator.chain.rpc import (
            Web3Chain,
            Web3CrossTickQuoter,
            Web3FeedRegistry,
            Web3RouterQuoter,
        )

        chain = Web3Chain(args.rpc_url)
        return build_engine(
            config,
            chain,
            Web3FeedRegistry(args.rpc_url),
            simulator=StateTickSimulator(chain, Web3CrossTickQuoter(args.rpc_url)),
            router=Web3RouterQuoter(args.rpc_url, args.router) if args.router else None,
            branch_timeout=args.timeout,
        )

    market = demo_market(config)
    return build_engine(
        config,
        market.chain,
        market.feeds,
        simulator=market.simulator,
        router=market.router,
        branch_timeout=args.timeout,
    )


def main() -> int:
    """Main entry point for the quote CLI."""
    parser = argparse.ArgumentParser(
        description="Quote a swap across AMM venues with optional oracle validation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Known symbols: {', '.join(SYMBOLS)}",
    )
    parser.add_argument("token_in", help="Token to sell (symbol or address)")
    parser.add_argument("token_out", help="Token to buy (symbol or address)")
    parser.add_argument("amount_in", type=int, help="Input amount in smallest units")
    parser.add_argument(
        "--mode",
        choices=["optimal", "executable", "unsafe", "supported"],
        default="optimal",
        help="Which operation to run (default: optimal)",
    )
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Apply the slippage haircut to the result",
    )
    parser.add_argument("--rpc-url", type=str, default=None, help="Ethereum JSON-RPC URL")
    parser.add_argument(
        "--router",
        type=str,
        default=None,
        help="Router contract exposing getBestRate (RPC mode only)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds before a slow source counts as no quote",
    )
    parser.add_argument("--json", action="store_true", help="Print the quote as JSON")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )

    try:
        token_in = resolve_token(args.token_in)
        token_out = resolve_token(args.token_out)
    except ValueError as e:
        print(f"Error: {e}")
        return 2

    engine = build(args)
    finder: SwapFinder = SlippagePolicy(engine) if args.lenient else engine

    try:
        if args.mode == "supported":
            supported = finder.is_pair_supported(token_in, token_out, args.amount_in)
            print("supported" if supported else "not supported")
            return 0 if supported else 1

        operation = {
            "optimal": finder.find_optimal_swap,
            "executable": finder.find_executable_swap,
            "unsafe": finder.unsafe_find_executable_swap,
        }[args.mode]
        quote = operation(token_in, token_out, args.amount_in)
    except AggregatorError as e:
        logger.error("quote_rejected", error=type(e).__name__, detail=str(e))
        print(f"Rejected: {e}")
        return 1
    except ValueError as e:
        print(f"Error: {e}")
        return 2

    if args.json:
        print(json.dumps(QuoteResponse.from_quote(quote).model_dump(by_alias=True, mode="json")))
    else:
        print(f"venue:      {quote.venue} ({quote.kind.value})")
        print(f"amount_out: {quote.amount_out}")
        for pool, fee in zip(quote.pools, quote.fees, strict=True):
            print(f"  pool {pool or '-'} fee {fee} bps")
    return 0 if quote.amount_out > 0 else 1


if __name__ == "__main__":
    sys.exit(main())

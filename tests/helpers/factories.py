"""Factory functions for building in-memory markets and engines.

Usage:
    from tests.helpers import make_market, make_engine

    market = make_market()
    market.add_pair("uniswap_v2", WETH, USDC, 1_000 * 10**18, 3_000_000 * 10**6)
    engine = make_engine(market)
"""

from dataclasses import dataclass, field

from aggregator.admin import AdminSettings
from aggregator.chain.memory import (
    InMemoryChain,
    ScriptedTickSimulator,
    StaticFeedRegistry,
    StaticRouterQuoter,
)
from aggregator.config import ChainConfig, ConstantProductVenue, mainnet_config
from aggregator.engine import QuoteEngine, build_engine
from aggregator.models.feeds import Denomination
from tests.helpers.constants import ETH_USD, ETH_USD_FEED, NOW, OPERATOR, TOKEN_DECIMALS


@dataclass
class Market:
    """In-memory collaborators plus the config they were built for."""

    config: ChainConfig
    chain: InMemoryChain
    simulator: ScriptedTickSimulator
    router: StaticRouterQuoter
    feeds: StaticFeedRegistry
    now: int = NOW
    venues: dict[str, ConstantProductVenue] = field(default_factory=dict)

    def clock(self) -> float:
        return float(self.now)

    def add_pair(
        self, venue: str, token_a: str, token_b: str, reserve_a: int, reserve_b: int
    ) -> str:
        """Deploy a constant-product pair on the named venue."""
        return self.chain.add_pair(self.venues[venue], token_a, token_b, reserve_a, reserve_b)

    def set_feed(
        self,
        handle: str,
        denomination: Denomination,
        value: int,
        age: int = 0,
    ) -> None:
        """Register a feed answer updated `age` seconds ago."""
        self.feeds.set_price(handle, denomination, value, updated_at=self.now - age)


def make_market(
    config: ChainConfig | None = None,
    eth_usd: int | None = ETH_USD,
) -> Market:
    """Create an empty market on mainnet config.

    Args:
        config: Chain config (default: mainnet_config())
        eth_usd: ETH/USD feed answer, None to leave the feed unset

    Returns:
        Market with no pools, an empty router and (optionally) ETH/USD
    """
    config = config or mainnet_config()
    chain = InMemoryChain()
    for token, decimals in TOKEN_DECIMALS.items():
        chain.set_decimals(token, decimals)

    market = Market(
        config=config,
        chain=chain,
        simulator=ScriptedTickSimulator(),
        router=StaticRouterQuoter(),
        feeds=StaticFeedRegistry(clock=lambda: float(NOW)),
        venues={venue.name: venue for venue in config.constant_product_venues},
    )
    if eth_usd is not None:
        market.set_feed(ETH_USD_FEED, Denomination.USD, eth_usd)
    return market


def make_engine(
    market: Market,
    operator: str = OPERATOR,
    settings: AdminSettings | None = None,
    max_workers: int = 0,
    branch_timeout: float | None = None,
) -> QuoteEngine:
    """Create an engine over `market` (sequential fan-out by default)."""
    return build_engine(
        market.config,
        market.chain,
        market.feeds,
        simulator=market.simulator,
        router=market.router,
        settings=settings,
        operator=operator,
        max_workers=max_workers,
        branch_timeout=branch_timeout,
        clock=market.clock,
    )

"""Top-level quoting operations.

QuoteEngine ties the dex route aggregator, the oracle resolver and the
safety validator together behind the four read-only operations, plus the
two operator-only setting updates.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable

import structlog

from aggregator.admin import AdminSettings
from aggregator.amm.base import QuoteSource
from aggregator.amm.concentrated import (
    ConcentratedLiquiditySelector,
    ConcentratedLiquiditySource,
    StateTickSimulator,
)
from aggregator.amm.constant_product import ConstantProductSource
from aggregator.amm.router_source import AggregatorRouterSource
from aggregator.chain.interfaces import ChainReader, FeedLookup, RouterQuoter, TickSimulator
from aggregator.config import ChainConfig, mainnet_config
from aggregator.errors import StaleFeedError
from aggregator.models.quote import FeedQuote, Query, Quote, SourceKind
from aggregator.models.types import ZERO_ADDRESS, normalize_address, same_token
from aggregator.oracle import FeedReader, OracleFeedResolver
from aggregator.routing import RouteAggregator
from aggregator.safety import SafetyValidator
from aggregator.slippage import SlippagePolicy, SwapFinder

logger = structlog.get_logger()

ORACLE_VENUE = "oracle"

# Cheapest existence checks first
_SUPPORT_CHECK_ORDER = {
    SourceKind.CONCENTRATED: 0,
    SourceKind.CONSTANT_PRODUCT: 1,
    SourceKind.ROUTER: 2,
}


class QuoteEngine:
    """Best-rate discovery with optional oracle validation.

    Args:
        config: Chain configuration
        dex: Route aggregator over the registered quote sources
        resolver: Feed-based output estimator
        settings: Operator, haircut and tolerance
        validator: Dex-versus-oracle check (default SafetyValidator())
    """

    def __init__(
        self,
        config: ChainConfig,
        dex: RouteAggregator,
        resolver: OracleFeedResolver,
        settings: AdminSettings,
        validator: SafetyValidator | None = None,
    ) -> None:
        self.config = config
        self.dex = dex
        self.resolver = resolver
        self.settings = settings
        self.validator = validator or SafetyValidator()

    def _check_pair(self, token_in: str, token_out: str, amount_in: int) -> tuple[str, str]:
        if amount_in <= 0:
            raise ValueError(f"amount_in must be positive, got {amount_in}")
        if same_token(token_in, token_out):
            raise ValueError(f"token_in and token_out are the same token: {token_in}")
        return normalize_address(token_in), normalize_address(token_out)

    def is_pair_supported(self, token_in: str, token_out: str, amount_in: int) -> bool:
        """True if the feed or any source would quote a non-zero amount.

        Checks feeds alone first, then sources from cheapest to most
        expensive, then the bridged candidates, and only then a feed estimate
        that prices one side on the dex. Stops at the first hit. A stale feed
        counts as no feed here instead of failing the check.
        """
        token_in, token_out = self._check_pair(token_in, token_out, amount_in)

        if self._feed_opinion(self.resolver.resolve_without_bridge, token_in, token_out, amount_in):
            return True

        sources = sorted(self.dex.sources, key=lambda s: _SUPPORT_CHECK_ORDER.get(s.kind, 99))
        for source in sources:
            if source.kind is not SourceKind.ROUTER and not source.exists(token_in, token_out):
                continue
            if source.quote(token_in, token_out, amount_in).amount_out > 0:
                return True

        query = Query(token_in, token_out, amount_in, self.config.connector)
        for candidate in self.dex.candidates(query):
            if not candidate.bridged:
                continue
            if self.dex.bridged_quote(candidate.source, query).amount_out > 0:
                return True

        return self._feed_opinion(self.resolver.resolve, token_in, token_out, amount_in)

    @staticmethod
    def _feed_opinion(
        resolve: Callable[[str, str, int], FeedQuote],
        token_in: str,
        token_out: str,
        amount_in: int,
    ) -> bool:
        try:
            return resolve(token_in, token_out, amount_in).has_opinion
        except StaleFeedError as e:
            logger.info("pair_support_feed_stale", token=e.base, denomination=e.denomination)
            return False

    def find_optimal_swap(self, token_in: str, token_out: str, amount_in: int) -> Quote:
        """Oracle estimate when one exists, else the best dex quote.

        Raises:
            StaleFeedError: If a consulted feed is stale
        """
        token_in, token_out = self._check_pair(token_in, token_out, amount_in)

        feed = self.resolver.resolve(token_in, token_out, amount_in)
        if feed.has_opinion:
            return self._oracle_quote(feed)

        return self.dex.best(Query(token_in, token_out, amount_in, self.config.connector))

    def find_executable_swap(self, token_in: str, token_out: str, amount_in: int) -> Quote:
        """Best dex quote, validated against the oracle reference.

        Raises:
            StaleFeedError: If a consulted feed is stale
            SlippageExceededError: If the dex quote is outside the tolerance band
        """
        token_in, token_out = self._check_pair(token_in, token_out, amount_in)

        feed = self.resolver.resolve(token_in, token_out, amount_in)
        connector_leg = None
        if self.config.connector == self.config.base_asset:
            connector_leg = feed.connector_leg

        quote = self.dex.best(
            Query(token_in, token_out, amount_in, self.config.connector, connector_leg)
        )
        self.validator.validate(quote, feed, self.settings.tolerance_bps)
        return quote

    def unsafe_find_executable_swap(self, token_in: str, token_out: str, amount_in: int) -> Quote:
        """Best dex quote without oracle validation."""
        token_in, token_out = self._check_pair(token_in, token_out, amount_in)
        return self.dex.best(Query(token_in, token_out, amount_in, self.config.connector))

    def set_slippage(self, caller: str, new_bps: int) -> None:
        self.settings.set_slippage(caller, new_bps)

    def set_tolerance(self, caller: str, new_bps: int) -> None:
        self.settings.set_tolerance(caller, new_bps)

    @staticmethod
    def _oracle_quote(feed: FeedQuote) -> Quote:
        leg = feed.bridge_leg
        return Quote(
            kind=SourceKind.ORACLE,
            venue=ORACLE_VENUE,
            amount_out=feed.final_quote,
            pools=leg.pools if leg is not None else (),
            fees=leg.fees if leg is not None else (),
        )


def build_sources(
    config: ChainConfig,
    chain: ChainReader,
    simulator: TickSimulator | None = None,
    router: RouterQuoter | None = None,
) -> list[QuoteSource]:
    """Register sources in enumeration order: router, constant product, concentrated."""
    sources: list[QuoteSource] = []
    if router is not None and config.router_name is not None:
        sources.append(AggregatorRouterSource(router, name=config.router_name))
    sources.extend(ConstantProductSource(venue, chain) for venue in config.constant_product_venues)
    if config.concentrated_venue is not None and simulator is not None:
        selector = ConcentratedLiquiditySelector(config.concentrated_venue, chain, simulator, config)
        sources.append(ConcentratedLiquiditySource(selector))
    return sources


def build_engine(
    config: ChainConfig,
    chain: ChainReader,
    feeds: FeedLookup,
    *,
    simulator: TickSimulator | None = None,
    router: RouterQuoter | None = None,
    settings: AdminSettings | None = None,
    operator: str = ZERO_ADDRESS,
    max_workers: int = 8,
    branch_timeout: float | None = None,
    clock: Callable[[], float] = time.time,
) -> QuoteEngine:
    """Wire a QuoteEngine from collaborators.

    Args:
        config: Chain configuration
        chain: Pool state and token metadata reader
        feeds: Price feed lookup
        simulator: Tick simulator; the concentrated source is skipped without one
        router: Router quoter; the router source is skipped without one
        settings: Shared admin settings (default: fresh settings for `operator`)
        operator: Operator identity when `settings` is not given
        max_workers: Fan-out thread pool size (0 = sequential)
        branch_timeout: Seconds before an unfinished branch counts as zero
        clock: Current unix time, used for feed staleness
    """
    sources = build_sources(config, chain, simulator=simulator, router=router)
    dex = RouteAggregator(sources, max_workers=max_workers, branch_timeout=branch_timeout)
    resolver = OracleFeedResolver(config, FeedReader(feeds, config, clock=clock), chain, dex)
    return QuoteEngine(
        config=config,
        dex=dex,
        resolver=resolver,
        settings=settings if settings is not None else AdminSettings(operator),
    )


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "false").lower() in ("true", "1", "yes")


def _create_default_engine() -> SwapFinder:
    """Engine for mainnet defaults, configured from the environment.

    With AGGREGATOR_RPC_URL set, collaborators talk to that node (the router
    source also needs AGGREGATOR_ROUTER_ADDRESS). Without it, the in-memory
    demo market is used. AGGREGATOR_LENIENT wraps the engine in the
    slippage policy.
    """
    config = mainnet_config()
    operator = os.environ.get("AGGREGATOR_OPERATOR", ZERO_ADDRESS)
    timeout = os.environ.get("AGGREGATOR_BRANCH_TIMEOUT")
    branch_timeout = float(timeout) if timeout else None

    rpc_url = os.environ.get("AGGREGATOR_RPC_URL")
    if rpc_url:
        from aggregator.chain.rpc import (
            Web3Chain,
            Web3CrossTickQuoter,
            Web3FeedRegistry,
            Web3RouterQuoter,
        )

        logger.info("rpc_collaborators_enabled", rpc_url=rpc_url[:50] + "...")
        chain = Web3Chain(rpc_url)
        router_address = os.environ.get("AGGREGATOR_ROUTER_ADDRESS")
        engine = build_engine(
            config,
            chain,
            Web3FeedRegistry(rpc_url),
            simulator=StateTickSimulator(chain, Web3CrossTickQuoter(rpc_url)),
            router=Web3RouterQuoter(rpc_url, router_address) if router_address else None,
            operator=operator,
            branch_timeout=branch_timeout,
        )
    else:
        from aggregator.chain.memory import demo_market

        logger.info("demo_market_enabled", reason="AGGREGATOR_RPC_URL not set")
        market = demo_market(config)
        engine = build_engine(
            config,
            market.chain,
            market.feeds,
            simulator=market.simulator,
            router=market.router,
            operator=operator,
            branch_timeout=branch_timeout,
        )

    if _env_flag("AGGREGATOR_LENIENT"):
        return SlippagePolicy(engine)
    return engine


_default_engine: SwapFinder | None = None


def get_default_engine() -> SwapFinder:
    """Process-wide engine, created on first use."""
    global _default_engine
    if _default_engine is None:
        _default_engine = _create_default_engine()
    return _default_engine


__all__ = [
    "ORACLE_VENUE",
    "QuoteEngine",
    "build_engine",
    "build_sources",
    "get_default_engine",
]

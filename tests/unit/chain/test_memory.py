"""Tests for the in-memory collaborators and the demo market."""

import pytest

from aggregator.chain.memory import (
    DEMO_TOKEN,
    InMemoryChain,
    StaticFeedRegistry,
    demo_market,
)
from aggregator.config import mainnet_config
from aggregator.engine import build_engine
from aggregator.models.feeds import Denomination
from aggregator.models.quote import SourceKind
from aggregator.result import CallFailure
from tests.helpers import USDC, WETH


class TestInMemoryChain:
    """Reserves ordering and failure injection."""

    def test_reserves_follow_token_order(self):
        config = mainnet_config()
        chain = InMemoryChain()
        venue = config.constant_product_venues[0]
        # USDC sorts before WETH, so USDC is token0
        pair = chain.add_pair(venue, WETH, USDC, 10, 30_000)
        assert chain.get_reserves(pair).value == (30_000, 10)
        assert chain.has_code(pair).value is True

    def test_injected_failure(self):
        chain = InMemoryChain()
        pair = chain.deploy("0x" + "12" * 20)
        chain.fail("get_reserves", pair, CallFailure.TIMEOUT)
        result = chain.get_reserves(pair)
        assert result.is_error
        assert result.failure is CallFailure.TIMEOUT
        assert ("get_reserves", pair) in chain.calls

    def test_missing_decimals_revert(self):
        result = InMemoryChain().decimals(WETH)
        assert result.failure is CallFailure.REVERTED


class TestStaticFeedRegistry:
    def test_entries_without_timestamp_are_always_fresh(self):
        now = [1_000.0]
        feeds = StaticFeedRegistry(clock=lambda: now[0])
        feeds.set_price("0x" + "ee" * 20, Denomination.USD, 5)
        assert feeds.latest("0x" + "ee" * 20, Denomination.USD).value.updated_at == 1_000
        now[0] = 9_000.0
        assert feeds.latest("0x" + "ee" * 20, Denomination.USD).value.updated_at == 9_000

    def test_unknown_feed_not_found(self):
        result = StaticFeedRegistry().latest("0x" + "ee" * 20, Denomination.ETH)
        assert result.failure is CallFailure.NOT_FOUND


class TestDemoMarket:
    """The demo market quotes end to end."""

    @pytest.fixture
    def demo_engine(self):
        config = mainnet_config()
        market = demo_market(config)
        return build_engine(
            config,
            market.chain,
            market.feeds,
            simulator=market.simulator,
            router=market.router,
            max_workers=0,
        )

    def test_every_source_quotes_weth_usdc(self, demo_engine):
        for source in demo_engine.dex.sources:
            assert source.quote(WETH, USDC, 10**18).amount_out > 2_900 * 10**6, source.name

    def test_executable_quote_passes_validation(self, demo_engine):
        quote = demo_engine.find_executable_swap(WETH, USDC, 10**18)
        assert quote.amount_out > 2_900 * 10**6

    def test_demo_token_is_priced_through_the_bridge(self, demo_engine):
        assert demo_engine.is_pair_supported(DEMO_TOKEN, USDC, 10**18)
        quote = demo_engine.find_optimal_swap(DEMO_TOKEN, USDC, 1_000 * 10**18)
        assert quote.kind is SourceKind.ORACLE
        assert len(quote.pools) == 1
        assert quote.amount_out > 0

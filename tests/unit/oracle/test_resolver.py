"""Tests for feed-based output estimation."""

import dataclasses

import pytest

from aggregator.amm.constant_product import get_amount_out
from aggregator.config import feed_table, mainnet_config
from aggregator.errors import StaleFeedError
from aggregator.models.feeds import Denomination, TokenMeta
from aggregator.models.quote import SourceKind
from aggregator.oracle import OracleFeedResolver
from tests.helpers import (
    BTC_USD,
    BTC_USD_FEED,
    DAI,
    ETH_USD,
    ETH_USD_FEED,
    LINK,
    TKN_A,
    TKN_B,
    UNI,
    USDC,
    WBTC,
    WETH,
    make_engine,
    make_market,
)

# TKN_A/WETH pair: 1 TKN_A ~ 0.001 WETH
TKN_RESERVE = 1_000_000 * 10**18
TKN_WETH_RESERVE = 1_000 * 10**18


def resolver_for(market) -> OracleFeedResolver:
    return make_engine(market).resolver


def feed_reads(market, handle, denomination=Denomination.USD) -> int:
    return sum(1 for key in market.feeds.calls if key == (handle, denomination))


class TestBaseAssetFeed:
    """Base asset against a token with an ETH-denominated feed."""

    def test_selling_base_asset(self, market):
        market.set_feed(LINK, Denomination.ETH, 5 * 10**15)  # 0.005 ETH per LINK
        feed = resolver_for(market).resolve(WETH, LINK, 10**18)
        assert feed.final_quote == 200 * 10**18
        assert not feed.used_bridge
        assert feed_reads(market, ETH_USD_FEED) == 0

    def test_buying_base_asset(self, market):
        market.set_feed(LINK, Denomination.ETH, 5 * 10**15)
        feed = resolver_for(market).resolve(LINK, WETH, 200 * 10**18)
        assert feed.final_quote == 10**18

    def test_missing_eth_feed_falls_through_to_usd(self, market):
        """Without the ETH feed answer, LINK's USD feed prices the pair."""
        market.set_feed(LINK, Denomination.USD, 15 * 10**8)
        feed = resolver_for(market).resolve(WETH, LINK, 10**18)
        assert feed.final_quote == 200 * 10**18


class TestUsdCrossRate:
    """Both sides priced in USD."""

    def test_stablecoins_need_no_feed(self, market):
        feed = resolver_for(market).resolve(USDC, DAI, 1_000 * 10**6)
        assert feed.final_quote == 1_000 * 10**18
        assert market.feeds.calls == []

    def test_base_asset_uses_eth_usd_once(self, market):
        feed = resolver_for(market).resolve(WETH, USDC, 10**18)
        assert feed.final_quote == 3_000 * 10**6
        assert feed_reads(market, ETH_USD_FEED) == 1

    def test_btc_asset_without_usd_feed_uses_btc_usd(self, market):
        market.set_feed(BTC_USD_FEED, Denomination.USD, BTC_USD)
        feed = resolver_for(market).resolve(WBTC, WETH, 10**8)
        assert feed.final_quote == 20 * 10**18

    def test_btc_asset_prefers_its_own_usd_feed(self, market):
        market.set_feed(WBTC, Denomination.USD, 59_000 * 10**8)
        market.set_feed(BTC_USD_FEED, Denomination.USD, BTC_USD)
        feed = resolver_for(market).resolve(WBTC, USDC, 10**8)
        assert feed.final_quote == 59_000 * 10**6
        assert feed_reads(market, BTC_USD_FEED) == 0

    def test_eth_denominated_token_converted_through_eth_usd(self, market):
        market.set_feed(UNI, Denomination.ETH, 2 * 10**15)  # 0.002 ETH = 6 USD
        feed = resolver_for(market).resolve(UNI, USDC, 10**18)
        assert feed.final_quote == 6 * 10**6

    def test_token_decimals_from_chain(self, market):
        market.set_feed(LINK, Denomination.USD, 15 * 10**8)
        feed = resolver_for(market).resolve(LINK, USDC, 10**18)
        assert feed.final_quote == 15 * 10**6
        assert ("decimals", LINK) in market.chain.calls

    def test_decimals_failure_means_no_opinion(self, market):
        market.set_feed(LINK, Denomination.USD, 15 * 10**8)
        market.chain.fail("decimals", LINK)
        feed = resolver_for(market).resolve(LINK, USDC, 10**18)
        assert feed.final_quote == 0

    def test_known_decimals_skip_the_chain(self, market):
        resolver = resolver_for(market)
        assert resolver.token(USDC) == TokenMeta(address=USDC, decimals=6)
        assert market.chain.calls == []


class TestStaleness:
    """Stale feeds abort resolution."""

    def test_stale_eth_usd_raises(self, market):
        market.set_feed(ETH_USD_FEED, Denomination.USD, ETH_USD, age=3_601)
        with pytest.raises(StaleFeedError):
            resolver_for(market).resolve(WETH, USDC, 10**18)

    def test_window_boundary_is_fresh(self, market):
        market.set_feed(ETH_USD_FEED, Denomination.USD, ETH_USD, age=3_600)
        feed = resolver_for(market).resolve(WETH, USDC, 10**18)
        assert feed.final_quote == 3_000 * 10**6


class TestDexBridge:
    """One side without a price is bridged through the base asset."""

    @pytest.fixture
    def bridged_market(self, market):
        market.add_pair("uniswap_v2", TKN_A, WETH, TKN_RESERVE, TKN_WETH_RESERVE)
        return market

    def test_unpriced_input(self, bridged_market):
        amount_in = 3_000 * 10**18
        leg_amount = get_amount_out(amount_in, TKN_RESERVE, TKN_WETH_RESERVE, 9_970)

        feed = resolver_for(bridged_market).resolve(TKN_A, USDC, amount_in)

        assert feed.bridge_leg_amount == leg_amount
        assert feed.final_quote == leg_amount * ETH_USD * 10**6 // (10**8 * 10**18)
        assert feed.bridge_from_input
        assert feed.bridge_source_kind is SourceKind.CONSTANT_PRODUCT
        assert feed.connector_leg is feed.bridge_leg
        assert feed.bridge_leg.venue == "uniswap_v2"

    def test_unpriced_output(self, bridged_market):
        feed = resolver_for(bridged_market).resolve(USDC, TKN_A, 3_000 * 10**6)

        assert feed.bridge_leg_amount == 10**18
        assert feed.final_quote == get_amount_out(10**18, TKN_WETH_RESERVE, TKN_RESERVE, 9_970)
        assert not feed.bridge_from_input
        assert feed.connector_leg is None

    def test_bridge_without_liquidity_is_no_opinion(self, market):
        feed = resolver_for(market).resolve(TKN_A, USDC, 10**18)
        assert feed.final_quote == 0
        assert not feed.used_bridge

    def test_bridge_needs_eth_usd(self, bridged_market):
        bridged_market.feeds.entries.clear()
        feed = resolver_for(bridged_market).resolve(USDC, TKN_A, 3_000 * 10**6)
        assert feed.final_quote == 0


class TestNoOpinion:
    """Nothing priced means zero, never an error."""

    def test_neither_side_priced(self, market):
        feed = resolver_for(market).resolve(TKN_A, TKN_B, 10**18)
        assert feed.final_quote == 0
        assert not feed.has_opinion

    def test_missing_eth_usd(self):
        market = make_market(eth_usd=None)
        assert resolver_for(market).resolve(WETH, USDC, 10**18).final_quote == 0

    def test_non_positive_feed_is_no_price(self, market):
        market.set_feed(LINK, Denomination.USD, 0)
        assert resolver_for(market).resolve(LINK, USDC, 10**18).final_quote == 0

    def test_eth_price_too_small_for_usd_is_no_price(self, market):
        market.set_feed(UNI, Denomination.ETH, 10**6)  # floors to 0 USD
        resolver = resolver_for(market)
        assert resolver.resolve(USDC, UNI, 10**6).final_quote == 0
        assert resolver.resolve(UNI, USDC, 10**18).final_quote == 0

    def test_engine_survives_dust_priced_token(self, market):
        market.set_feed(UNI, Denomination.ETH, 10**6)
        assert make_engine(market).find_optimal_swap(USDC, UNI, 10**6).amount_out == 0


class TestBtcDenominatedFeed:
    """A token whose only feed is quoted in BTC."""

    @pytest.fixture
    def btc_market(self):
        config = mainnet_config()
        feeds = {**config.feeds, **feed_table([(TKN_A, Denomination.BTC, TKN_A, 86_400)])}
        market = make_market(config=dataclasses.replace(config, feeds=feeds))
        market.set_feed(TKN_A, Denomination.BTC, 10**6)  # 0.01 BTC
        return market

    def test_converted_through_btc_usd(self, btc_market):
        btc_market.set_feed(BTC_USD_FEED, Denomination.USD, BTC_USD)
        feed = resolver_for(btc_market).resolve(TKN_A, USDC, 10**18)
        assert feed.final_quote == 600 * 10**6
        assert feed_reads(btc_market, TKN_A, Denomination.BTC) == 1

    def test_cross_rate_against_base_asset(self, btc_market):
        btc_market.set_feed(BTC_USD_FEED, Denomination.USD, BTC_USD)
        feed = resolver_for(btc_market).resolve(WETH, TKN_A, 10**18)
        assert feed.final_quote == 5 * 10**18

    def test_missing_btc_usd_is_no_opinion(self, btc_market):
        feed = resolver_for(btc_market).resolve(TKN_A, USDC, 10**18)
        assert feed.final_quote == 0
        assert not feed.has_opinion

"""Tests for the top-level quoting operations."""

import pytest

from aggregator.amm.constant_product import get_amount_out
from aggregator.amm.pool_address import constant_product_pair_address
from aggregator.engine import ORACLE_VENUE
from aggregator.errors import SlippageExceededError, StaleFeedError, UnauthorizedError
from aggregator.models.feeds import Denomination
from aggregator.models.quote import SourceKind
from aggregator.slippage import SlippagePolicy
from tests.helpers import (
    ETH_USD,
    ETH_USD_FEED,
    OPERATOR,
    STRANGER,
    TKN_A,
    TKN_B,
    USDC,
    V2_USDC_RESERVE,
    V2_WETH_RESERVE,
    WETH,
    make_engine,
    make_market,
)

ONE_WETH = 10**18
TKN_RESERVE = 1_000_000 * 10**18
TKN_WETH_RESERVE = 1_000 * 10**18


@pytest.fixture
def tkn_market(weth_usdc_market):
    """WETH/USDC market plus TKN_A/WETH on Uniswap V2 (no feed for TKN_A)."""
    weth_usdc_market.add_pair("uniswap_v2", TKN_A, WETH, TKN_RESERVE, TKN_WETH_RESERVE)
    return weth_usdc_market


class TestUnsafeFindExecutableSwap:
    """Plain best-rate discovery."""

    def test_picks_deepest_pool(self, engine):
        quote = engine.unsafe_find_executable_swap(WETH, USDC, ONE_WETH)
        assert quote.venue == "uniswap_v2"
        assert quote.kind is SourceKind.CONSTANT_PRODUCT
        assert quote.amount_out == get_amount_out(ONE_WETH, V2_WETH_RESERVE, V2_USDC_RESERVE)
        assert quote.fees == (30,)

    def test_ignores_stale_feeds(self, weth_usdc_market, engine):
        weth_usdc_market.set_feed(ETH_USD_FEED, Denomination.USD, ETH_USD, age=10_000)
        assert engine.unsafe_find_executable_swap(WETH, USDC, ONE_WETH).amount_out > 0

    def test_unknown_pair_is_zero(self, engine):
        quote = engine.unsafe_find_executable_swap(TKN_A, TKN_B, ONE_WETH)
        assert quote.amount_out == 0

    def test_accepts_mixed_case_addresses(self, engine):
        quote = engine.unsafe_find_executable_swap(WETH.upper().replace("0X", "0x"), USDC, ONE_WETH)
        assert quote.venue == "uniswap_v2"


class TestFindOptimalSwap:
    """Oracle estimate first, dex fallback."""

    def test_oracle_estimate(self, engine):
        quote = engine.find_optimal_swap(WETH, USDC, ONE_WETH)
        assert quote.kind is SourceKind.ORACLE
        assert quote.venue == ORACLE_VENUE
        assert quote.amount_out == 3_000 * 10**6
        assert quote.pools == ()

    def test_bridged_oracle_estimate_reports_leg_pools(self, tkn_market):
        engine = make_engine(tkn_market)
        quote = engine.find_optimal_swap(TKN_A, USDC, 1_000 * 10**18)
        assert quote.kind is SourceKind.ORACLE
        assert len(quote.pools) == 1
        assert quote.fees == (30,)

    def test_falls_back_to_dex(self, tkn_market):
        tkn_market.add_pair("uniswap_v2", TKN_B, WETH, TKN_RESERVE, TKN_WETH_RESERVE)
        engine = make_engine(tkn_market)
        quote = engine.find_optimal_swap(TKN_A, TKN_B, 10**18)
        assert quote.kind is SourceKind.CONSTANT_PRODUCT
        assert len(quote.pools) == 2
        assert quote.amount_out > 0

    def test_stale_feed_raises(self, weth_usdc_market, engine):
        weth_usdc_market.set_feed(ETH_USD_FEED, Denomination.USD, ETH_USD, age=3_601)
        with pytest.raises(StaleFeedError):
            engine.find_optimal_swap(WETH, USDC, ONE_WETH)


class TestFindExecutableSwap:
    """Best dex quote validated against the oracle."""

    def test_passes_default_tolerance(self, engine):
        quote = engine.find_executable_swap(WETH, USDC, ONE_WETH)
        assert quote.venue == "uniswap_v2"
        assert quote.amount_out == engine.unsafe_find_executable_swap(WETH, USDC, ONE_WETH).amount_out

    def test_rejects_under_tight_tolerance(self, engine):
        engine.set_tolerance(OPERATOR, 10)
        with pytest.raises(SlippageExceededError) as exc_info:
            engine.find_executable_swap(WETH, USDC, ONE_WETH)
        assert exc_info.value.reference == 3_000 * 10**6
        assert exc_info.value.minimum == 2_997 * 10**6

    def test_stale_feed_raises(self, weth_usdc_market, engine):
        weth_usdc_market.set_feed(ETH_USD_FEED, Denomination.USD, ETH_USD, age=3_601)
        with pytest.raises(StaleFeedError):
            engine.find_executable_swap(WETH, USDC, ONE_WETH)

    def test_no_oracle_opinion_passes(self, tkn_market):
        tkn_market.add_pair("uniswap_v2", TKN_B, WETH, TKN_RESERVE, TKN_WETH_RESERVE)
        engine = make_engine(tkn_market)
        engine.set_tolerance(OPERATOR, 0)
        assert engine.find_executable_swap(TKN_A, TKN_B, 10**18).amount_out > 0

    def test_reuses_oracle_bridge_leg(self, tkn_market):
        """The feed's TKN_A -> WETH leg stands in for the bridged first hop."""
        engine = make_engine(tkn_market)
        tkn_pair = constant_product_pair_address(tkn_market.venues["uniswap_v2"], TKN_A, WETH)
        tkn_market.chain.calls.clear()

        quote = engine.find_executable_swap(TKN_A, USDC, 1_000 * 10**18)

        assert quote.venue == "uniswap_v2"
        assert quote.pools[0] == tkn_pair
        assert len(quote.pools) == 2
        assert tkn_market.chain.calls.count(("get_reserves", tkn_pair)) == 1


class TestValidation:
    """Argument checks shared by all operations."""

    @pytest.mark.parametrize(
        "operation",
        [
            "is_pair_supported",
            "find_optimal_swap",
            "find_executable_swap",
            "unsafe_find_executable_swap",
        ],
    )
    def test_zero_amount(self, engine, operation):
        with pytest.raises(ValueError):
            getattr(engine, operation)(WETH, USDC, 0)

    def test_same_token(self, engine):
        with pytest.raises(ValueError):
            engine.find_optimal_swap(WETH, WETH.upper().replace("0X", "0x"), ONE_WETH)


class TestIsPairSupported:
    """Support agrees with find_optimal_swap returning a non-zero amount."""

    @pytest.mark.parametrize(
        "token_in,token_out",
        [(WETH, USDC), (USDC, WETH), (TKN_A, USDC), (TKN_A, TKN_B), (TKN_B, TKN_A), (TKN_A, WETH)],
    )
    def test_matches_optimal_swap(self, tkn_market, token_in, token_out):
        engine = make_engine(tkn_market)
        expected = engine.find_optimal_swap(token_in, token_out, 10**18).amount_out > 0
        assert engine.is_pair_supported(token_in, token_out, 10**18) is expected

    def test_bridged_only_pair(self, tkn_market):
        tkn_market.add_pair("uniswap_v2", TKN_B, WETH, TKN_RESERVE, TKN_WETH_RESERVE)
        assert make_engine(tkn_market).is_pair_supported(TKN_A, TKN_B, 10**18)

    def test_stale_feed_counts_as_missing(self, weth_usdc_market, engine):
        weth_usdc_market.set_feed(ETH_USD_FEED, Denomination.USD, ETH_USD, age=3_601)
        assert engine.is_pair_supported(WETH, USDC, ONE_WETH)

    def test_stops_at_feed(self, weth_usdc_market, engine):
        weth_usdc_market.chain.calls.clear()
        assert engine.is_pair_supported(WETH, USDC, ONE_WETH)
        assert not any(method == "get_reserves" for method, _ in weth_usdc_market.chain.calls)

    def test_direct_pool_answers_before_dex_bridge(self, weth_usdc_market):
        bridge_pair = weth_usdc_market.add_pair(
            "uniswap_v2", TKN_A, WETH, TKN_RESERVE, TKN_WETH_RESERVE
        )
        weth_usdc_market.add_pair("uniswap_v2", TKN_A, USDC, TKN_RESERVE, 3_000_000 * 10**6)
        weth_usdc_market.chain.calls.clear()

        assert make_engine(weth_usdc_market).is_pair_supported(TKN_A, USDC, 10**18)
        assert ("get_reserves", bridge_pair) not in weth_usdc_market.chain.calls

    def test_feed_bridge_is_the_last_resort(self):
        market = make_market()
        market.add_pair("uniswap_v2", TKN_A, WETH, TKN_RESERVE, TKN_WETH_RESERVE)
        market.add_pair("sushiswap", WETH, USDC, V2_WETH_RESERVE, V2_USDC_RESERVE)
        engine = make_engine(market)

        assert engine.is_pair_supported(TKN_A, USDC, 10**18)
        assert engine.find_optimal_swap(TKN_A, USDC, 10**18).venue == ORACLE_VENUE


class TestSettings:
    def test_set_slippage_requires_operator(self, engine):
        with pytest.raises(UnauthorizedError):
            engine.set_slippage(STRANGER, 50)
        engine.set_slippage(OPERATOR, 50)
        assert engine.settings.slippage_bps == 50

    def test_lenient_policy_shares_settings(self, engine):
        lenient = SlippagePolicy(engine)
        assert lenient.find_optimal_swap(WETH, USDC, ONE_WETH).amount_out == 2_970 * 10**6
        engine.set_slippage(OPERATOR, 0)
        assert lenient.find_optimal_swap(WETH, USDC, ONE_WETH).amount_out == 3_000 * 10**6


class TestThreadedFanOut:
    def test_threaded_matches_sequential(self, tkn_market):
        sequential = make_engine(tkn_market)
        threaded = make_engine(tkn_market, max_workers=4)
        for pair in [(WETH, USDC), (TKN_A, USDC)]:
            assert threaded.unsafe_find_executable_swap(*pair, 10**18) == (
                sequential.unsafe_find_executable_swap(*pair, 10**18)
            )

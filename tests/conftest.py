"""Pytest configuration and fixtures."""

import pytest

from aggregator.engine import QuoteEngine
from tests.helpers import (
    USDC,
    V2_USDC_RESERVE,
    V2_WETH_RESERVE,
    WETH,
    Market,
    make_engine,
    make_market,
)


@pytest.fixture
def market() -> Market:
    """Empty mainnet-config market with an ETH/USD feed at 3000."""
    return make_market()


@pytest.fixture
def weth_usdc_market(market: Market) -> Market:
    """Market with WETH/USDC on Uniswap V2 (deep) and SushiSwap (shallow)."""
    market.add_pair("uniswap_v2", WETH, USDC, V2_WETH_RESERVE, V2_USDC_RESERVE)
    market.add_pair("sushiswap", WETH, USDC, V2_WETH_RESERVE // 10, V2_USDC_RESERVE // 10)
    return market


@pytest.fixture
def engine(weth_usdc_market: Market) -> QuoteEngine:
    """Engine over the WETH/USDC market."""
    return make_engine(weth_usdc_market)

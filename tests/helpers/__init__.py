"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Token addresses, prices and identities
- factories: In-memory market and engine factory functions
"""

from tests.helpers.constants import (
    BTC_USD,
    BTC_USD_FEED,
    DAI,
    ETH_USD,
    ETH_USD_FEED,
    LINK,
    NOW,
    OPERATOR,
    STRANGER,
    TKN_A,
    TKN_B,
    TOKEN_DECIMALS,
    UNI,
    USDC,
    USDT,
    V2_USDC_RESERVE,
    V2_WETH_RESERVE,
    WBTC,
    WETH,
)
from tests.helpers.factories import Market, make_engine, make_market

__all__ = [
    # Constants
    "WETH",
    "USDC",
    "DAI",
    "USDT",
    "WBTC",
    "LINK",
    "UNI",
    "TKN_A",
    "TKN_B",
    "TOKEN_DECIMALS",
    "V2_WETH_RESERVE",
    "V2_USDC_RESERVE",
    "ETH_USD",
    "BTC_USD",
    "ETH_USD_FEED",
    "BTC_USD_FEED",
    "NOW",
    "OPERATOR",
    "STRANGER",
    # Factories
    "Market",
    "make_market",
    "make_engine",
]

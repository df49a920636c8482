"""Liquidity sources (constant product, concentrated liquidity, router)."""

from aggregator.amm.base import QuoteSource
from aggregator.amm.concentrated import (
    ConcentratedLiquiditySelector,
    ConcentratedLiquiditySource,
    StateTickSimulator,
    TierQuote,
)
from aggregator.amm.constant_product import (
    ConstantProductSource,
    get_amount_out,
    has_enough_liquidity,
)
from aggregator.amm.pool_address import (
    concentrated_pool_address,
    constant_product_pair_address,
    create2_address,
)
from aggregator.amm.router_source import AggregatorRouterSource

__all__ = [
    # Contract
    "QuoteSource",
    # Constant product
    "ConstantProductSource",
    "get_amount_out",
    "has_enough_liquidity",
    # Concentrated liquidity
    "ConcentratedLiquiditySelector",
    "ConcentratedLiquiditySource",
    "StateTickSimulator",
    "TierQuote",
    # Router
    "AggregatorRouterSource",
    # Pool addresses
    "create2_address",
    "constant_product_pair_address",
    "concentrated_pool_address",
]

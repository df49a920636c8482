"""Concentrated-liquidity (Uniswap V3 style) support."""

from .selector import ConcentratedLiquiditySelector, TierQuote
from .simulator import StateTickSimulator
from .source import ConcentratedLiquiditySource

__all__ = [
    "ConcentratedLiquiditySelector",
    "ConcentratedLiquiditySource",
    "StateTickSimulator",
    "TierQuote",
]

"""Concentrated-liquidity quote source."""

from __future__ import annotations

from aggregator.models.quote import Quote, SourceKind

from .selector import ConcentratedLiquiditySelector


class ConcentratedLiquiditySource:
    """QuoteSource over the best fee tier of a concentrated venue.

    Fees are reported in basis points (tier pips / 100).
    """

    kind = SourceKind.CONCENTRATED
    bridgeable = True

    def __init__(self, selector: ConcentratedLiquiditySelector) -> None:
        self.selector = selector

    @property
    def name(self) -> str:
        return self.selector.venue.name

    def exists(self, token_in: str, token_out: str) -> bool:
        return self.selector.pool_exists(token_in, token_out)

    def quote(self, token_in: str, token_out: str, amount_in: int) -> Quote:
        best = self.selector.select(token_in, token_out, amount_in)
        return Quote(
            kind=self.kind,
            venue=self.name,
            amount_out=best.amount_out,
            pools=(best.pool,),
            fees=(best.fee // 100,),
        )


__all__ = ["ConcentratedLiquiditySource"]

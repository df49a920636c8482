"""Aggregator-router quote source.

Delegates to an external best-rate query. The router picks its own pool, so
the pool fee is looked up afterwards purely for reporting.
"""

from __future__ import annotations

import structlog

from aggregator.chain.interfaces import RouterQuoter
from aggregator.models.quote import Quote, SourceKind

logger = structlog.get_logger()


class AggregatorRouterSource:
    """QuoteSource backed by a router's best-rate query.

    Not bridgeable: the router already searches multi-hop paths itself.
    """

    kind = SourceKind.ROUTER
    bridgeable = False

    def __init__(self, router: RouterQuoter, name: str = "router") -> None:
        self.router = router
        self.name = name

    def exists(self, token_in: str, token_out: str) -> bool:
        rate = self.router.best_rate(token_in, token_out, 1)
        return rate.is_ok and rate.value is not None and rate.value.pool is not None

    def quote(self, token_in: str, token_out: str, amount_in: int) -> Quote:
        rate = self.router.best_rate(token_in, token_out, amount_in)
        if rate.is_error or rate.value is None:
            logger.debug(
                "router_quote_failed",
                venue=self.name,
                failure=rate.failure,
                detail=rate.detail,
            )
            return Quote.empty(self.kind, self.name)

        pool = rate.value.pool
        fee_bps = 0
        if pool is not None:
            fee_bps = self.router.pool_fee(pool).value_or(0) // 100

        return Quote(
            kind=self.kind,
            venue=self.name,
            amount_out=rate.value.amount_out,
            pools=(pool,),
            fees=(fee_bps,),
        )


__all__ = ["AggregatorRouterSource"]

"""Fee-tier search over concentrated-liquidity pools."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from aggregator.chain.interfaces import ChainReader, TickSimulator
from aggregator.config import ChainConfig, ConcentratedVenue

from ..pool_address import concentrated_pool_address

logger = structlog.get_logger()


@dataclass(frozen=True)
class TierQuote:
    """Best output across fee tiers.

    Attributes:
        amount_out: Best output found, 0 if no tier produced a quote
        fee: Fee tier (pips) of the winning pool, 0 if none
        pool: Winning pool address, None if none
    """

    amount_out: int
    fee: int = 0
    pool: str | None = None


class ConcentratedLiquiditySelector:
    """Picks the fee tier with the highest output for a pair.

    Pairs with a preferred tier in the chain config only ever check that
    tier. For every candidate tier the pool must be deployed, hold active
    liquidity and hold more token_in than the trade size; surviving pools
    are asked whether the swap stays in range and fall back to a full
    cross-tick simulation when it does not.

    Args:
        venue: Concentrated venue (factory, init code hash, fee tiers)
        chain: Reader for code existence, liquidity and balances
        simulator: In-range / cross-tick simulator
        config: Chain configuration holding the preferred tiers
    """

    def __init__(
        self,
        venue: ConcentratedVenue,
        chain: ChainReader,
        simulator: TickSimulator,
        config: ChainConfig,
    ) -> None:
        self.venue = venue
        self.chain = chain
        self.simulator = simulator
        self.config = config

    def tiers_for(self, token_in: str, token_out: str) -> tuple[int, ...]:
        preferred = self.config.preferred_tier(token_in, token_out)
        if preferred is not None:
            return (preferred,)
        return self.venue.fee_tiers

    def pool_address(self, token_in: str, token_out: str, fee: int) -> str:
        return concentrated_pool_address(self.venue, token_in, token_out, fee)

    def pool_exists(self, token_in: str, token_out: str) -> bool:
        """True if a pool is deployed for any tier that would be searched."""
        for fee in self.tiers_for(token_in, token_out):
            pool = self.pool_address(token_in, token_out, fee)
            if self.chain.has_code(pool).value_or(False):
                return True
        return False

    def _passes_sanity(self, pool: str, token_in: str, amount_in: int) -> bool:
        liquidity = self.chain.get_liquidity(pool).value_or(0)
        if liquidity <= 0:
            return False
        balance = self.chain.balance_of(token_in, pool).value_or(0)
        return balance > amount_in

    def quote_tier(self, token_in: str, token_out: str, amount_in: int, fee: int) -> int:
        """Output from one fee tier, 0 when the tier is unusable."""
        pool = self.pool_address(token_in, token_out, fee)

        if not self.chain.has_code(pool).value_or(False):
            return 0
        if not self._passes_sanity(pool, token_in, amount_in):
            logger.debug("cl_sanity_check_failed", pool=pool, fee=fee, amount_in=amount_in)
            return 0

        check = self.simulator.check_in_range(pool, token_in, token_out, fee, amount_in)
        if check.is_error or check.value is None:
            logger.debug("cl_in_range_failed", pool=pool, fee=fee, failure=check.failure)
            return 0

        if not check.value.crosses_tick:
            return check.value.in_range_output

        simulated = self.simulator.simulate_cross_tick(pool, token_in, token_out, fee, amount_in)
        if simulated.is_error:
            logger.debug("cl_cross_tick_failed", pool=pool, fee=fee, failure=simulated.failure)
        return simulated.value_or(0)

    def select(self, token_in: str, token_out: str, amount_in: int) -> TierQuote:
        best = TierQuote(amount_out=0)
        for fee in self.tiers_for(token_in, token_out):
            amount_out = self.quote_tier(token_in, token_out, amount_in, fee)
            if amount_out > best.amount_out:
                best = TierQuote(
                    amount_out=amount_out,
                    fee=fee,
                    pool=self.pool_address(token_in, token_out, fee),
                )
        return best


__all__ = ["ConcentratedLiquiditySelector", "TierQuote"]

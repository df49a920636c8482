"""Tick simulator backed by pool state and a cross-tick quoter.

The in-range question is answered locally from slot0, active liquidity and
the next initialized tick; only swaps that leave the active range go to the
(expensive) full simulation.
"""

from __future__ import annotations

import structlog

from aggregator.chain.interfaces import (
    CrossTickQuoter,
    InRangeCheck,
    PoolStateReader,
)
from aggregator.config import TICK_SPACING
from aggregator.models.types import normalize_address, sort_tokens
from aggregator.result import CallFailure, CallResult

from .tick_math import MAX_TICK, MIN_TICK, in_range_swap, sqrt_ratio_at_tick

logger = structlog.get_logger()


class StateTickSimulator:
    """TickSimulator that reads pool state and delegates crossing swaps.

    Args:
        state: Reader for slot0, liquidity and the tick bitmap
        quoter: QuoterV2-style full simulator used for tick-crossing swaps
        tick_spacing: Fee tier (pips) -> tick spacing
    """

    def __init__(
        self,
        state: PoolStateReader,
        quoter: CrossTickQuoter,
        tick_spacing: dict[int, int] | None = None,
    ) -> None:
        self.state = state
        self.quoter = quoter
        self.tick_spacing = dict(tick_spacing or TICK_SPACING)

    def check_in_range(
        self,
        pool: str,
        token_in: str,
        token_out: str,
        fee: int,
        amount_in: int,
    ) -> CallResult[InRangeCheck]:
        spacing = self.tick_spacing.get(fee)
        if spacing is None:
            return CallResult.fail(CallFailure.INVALID, f"unknown fee tier {fee}")

        slot0 = self.state.slot0(pool)
        if slot0.is_error or slot0.value is None:
            return CallResult.fail(slot0.failure or CallFailure.ERROR, slot0.detail)

        liquidity = self.state.get_liquidity(pool)
        if liquidity.is_error or liquidity.value is None:
            return CallResult.fail(liquidity.failure or CallFailure.ERROR, liquidity.detail)

        token0, _ = sort_tokens(token_in, token_out)
        zero_for_one = normalize_address(token_in) == token0

        boundary = self.state.next_initialized_tick(
            pool, slot0.value.tick, spacing, zero_for_one
        )
        if boundary.is_error or boundary.value is None:
            return CallResult.fail(boundary.failure or CallFailure.ERROR, boundary.detail)

        boundary_tick = min(max(boundary.value, MIN_TICK), MAX_TICK)
        crosses, amount_out = in_range_swap(
            sqrt_price=slot0.value.sqrt_price_x96,
            sqrt_boundary=sqrt_ratio_at_tick(boundary_tick),
            liquidity=liquidity.value,
            amount_in=amount_in,
            fee_pips=fee,
            zero_for_one=zero_for_one,
        )
        logger.debug(
            "in_range_check",
            pool=pool,
            fee=fee,
            crosses_tick=crosses,
            amount_out=amount_out,
        )
        return CallResult.ok(InRangeCheck(crosses_tick=crosses, in_range_output=amount_out))

    def simulate_cross_tick(
        self,
        pool: str,
        token_in: str,
        token_out: str,
        fee: int,
        amount_in: int,
    ) -> CallResult[int]:
        return self.quoter.quote_exact_input(token_in, token_out, fee, amount_in)


__all__ = ["StateTickSimulator"]

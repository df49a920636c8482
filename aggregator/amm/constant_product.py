"""Constant-product (x * y = k) quote source.

Covers every venue sharing the Uniswap V2 invariant. Venues differ only by
factory, pair init code and fee, all of which come from configuration.
"""

from __future__ import annotations

import structlog

from aggregator.chain.interfaces import ChainReader
from aggregator.config import ConstantProductVenue
from aggregator.constants import BPS
from aggregator.models.quote import Quote, SourceKind
from aggregator.models.types import normalize_address, sort_tokens
from aggregator.safe_int import S

from .pool_address import constant_product_pair_address

logger = structlog.get_logger()


def get_amount_out(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_multiplier: int = 9970,
) -> int:
    """Output amount from the constant product formula.

    Formula: amount_out = (in * fee * res_out) / (res_in * 10000 + in * fee)

    With the default 9970/10000 multiplier this is the familiar
    997/1000 formula: scaling both sides by 10 leaves the floor unchanged.

    Args:
        amount_in: Input token amount
        reserve_in: Reserve of input token in pool
        reserve_out: Reserve of output token in pool
        fee_multiplier: 10000 - fee_bps (9970 for a 0.3% fee)

    Returns:
        Output token amount, 0 for non-positive inputs
    """
    if amount_in <= 0:
        return 0
    if reserve_in <= 0 or reserve_out <= 0:
        return 0

    amount_in_with_fee = S(amount_in) * S(fee_multiplier)
    numerator = amount_in_with_fee * S(reserve_out)
    denominator = S(reserve_in) * S(BPS) + amount_in_with_fee

    return (numerator // denominator).value


def has_enough_liquidity(reserve_in: int, amount_in: int) -> bool:
    """Coarse liquidity filter: the input-side reserve must exceed amount_in.

    Not a slippage bound. It rejects pools too small for the trade size and
    still admits trades with large price impact.
    """
    return reserve_in > amount_in


class ConstantProductSource:
    """Quote source for one x*y=k venue.

    Args:
        venue: Venue configuration (factory, init code hash, fee)
        chain: Reader for code existence and reserves
    """

    kind = SourceKind.CONSTANT_PRODUCT
    bridgeable = True

    def __init__(self, venue: ConstantProductVenue, chain: ChainReader) -> None:
        self.venue = venue
        self.chain = chain

    @property
    def name(self) -> str:
        return self.venue.name

    def pair_address(self, token_in: str, token_out: str) -> str:
        return constant_product_pair_address(self.venue, token_in, token_out)

    def exists(self, token_in: str, token_out: str) -> bool:
        return self.chain.has_code(self.pair_address(token_in, token_out)).value_or(False)

    def quote(self, token_in: str, token_out: str, amount_in: int) -> Quote:
        pair = self.pair_address(token_in, token_out)
        empty = Quote(self.kind, self.name, 0, (pair,), (self.venue.fee_bps,))

        if not self.chain.has_code(pair).value_or(False):
            logger.debug("cp_pool_missing", venue=self.name, pool=pair)
            return empty

        reserves = self.chain.get_reserves(pair)
        if reserves.is_error or reserves.value is None:
            logger.debug(
                "cp_reserves_failed",
                venue=self.name,
                pool=pair,
                failure=reserves.failure,
                detail=reserves.detail,
            )
            return empty

        reserve0, reserve1 = reserves.value
        token0, _ = sort_tokens(token_in, token_out)
        if normalize_address(token_in) == token0:
            reserve_in, reserve_out = reserve0, reserve1
        else:
            reserve_in, reserve_out = reserve1, reserve0

        if not has_enough_liquidity(reserve_in, amount_in):
            logger.debug(
                "cp_insufficient_liquidity",
                venue=self.name,
                pool=pair,
                reserve_in=reserve_in,
                amount_in=amount_in,
            )
            return empty

        amount_out = get_amount_out(amount_in, reserve_in, reserve_out, self.venue.fee_multiplier)
        return Quote(self.kind, self.name, amount_out, (pair,), (self.venue.fee_bps,))


__all__ = ["ConstantProductSource", "get_amount_out", "has_enough_liquidity"]

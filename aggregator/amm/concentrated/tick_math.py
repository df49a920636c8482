"""Q64.96 fixed-point math for single-range concentrated-liquidity swaps.

Exact integer versions of the pool's TickMath / SqrtPriceMath routines,
enough to price a swap that stays between two initialized ticks.
"""

from __future__ import annotations

from aggregator.safe_int import S

Q96 = 2**96
MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342
FEE_DENOMINATOR = 1_000_000

_MAX_UINT256 = 2**256 - 1

# Multipliers for each set bit of |tick|, Q128.128
_TICK_FACTORS = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)


def sqrt_ratio_at_tick(tick: int) -> int:
    """sqrt(1.0001^tick) * 2^96, rounded up like the on-chain version."""
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")

    abs_tick = abs(tick)
    ratio = 0xFFFCB933BD6FAD37AA2D162D1A594001 if abs_tick & 0x1 else 1 << 128
    for bit, factor in _TICK_FACTORS:
        if abs_tick & bit:
            ratio = (ratio * factor) >> 128

    if tick > 0:
        ratio = _MAX_UINT256 // ratio

    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def amount0_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool) -> int:
    """Token0 amount between two prices for a given liquidity."""
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if sqrt_a <= 0:
        raise ValueError("sqrt price must be positive")

    numerator1 = S(liquidity) * S(Q96)
    numerator2 = S(sqrt_b) - S(sqrt_a)
    if round_up:
        return (numerator1 * numerator2).ceildiv(sqrt_b).ceildiv(sqrt_a).value
    return (numerator1 * numerator2 // S(sqrt_b) // S(sqrt_a)).value


def amount1_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool) -> int:
    """Token1 amount between two prices for a given liquidity."""
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a

    product = S(liquidity) * (S(sqrt_b) - S(sqrt_a))
    if round_up:
        return product.ceildiv(Q96).value
    return (product // S(Q96)).value


def next_sqrt_price_from_input(
    sqrt_price: int, liquidity: int, amount_in: int, zero_for_one: bool
) -> int:
    """Price after adding `amount_in` (net of fees) to the pool."""
    if liquidity <= 0:
        raise ValueError("liquidity must be positive")
    if amount_in == 0:
        return sqrt_price

    if zero_for_one:
        # Adding token0 pushes the price down; round up
        numerator1 = S(liquidity) * S(Q96)
        denominator = numerator1 + S(amount_in) * S(sqrt_price)
        return (numerator1 * S(sqrt_price)).ceildiv(denominator).value

    # Adding token1 pushes the price up; round down
    return sqrt_price + (S(amount_in) * S(Q96) // S(liquidity)).value


def in_range_swap(
    sqrt_price: int,
    sqrt_boundary: int,
    liquidity: int,
    amount_in: int,
    fee_pips: int,
    zero_for_one: bool,
) -> tuple[bool, int]:
    """Price an exact-input swap that must not leave the current range.

    Args:
        sqrt_price: Current sqrt price (Q64.96)
        sqrt_boundary: Sqrt price at the next initialized tick in the swap direction
        liquidity: Active liquidity
        amount_in: Gross input amount
        fee_pips: Pool fee in hundredths of a basis point
        zero_for_one: True when selling token0

    Returns:
        (crosses_tick, amount_out). When the input is enough to reach the
        boundary the swap crosses a tick and amount_out is 0.
    """
    if liquidity <= 0 or amount_in <= 0:
        return False, 0

    amount_less_fee = (S(amount_in) * S(FEE_DENOMINATOR - fee_pips) // S(FEE_DENOMINATOR)).value
    if zero_for_one:
        capacity = amount0_delta(sqrt_boundary, sqrt_price, liquidity, round_up=True)
    else:
        capacity = amount1_delta(sqrt_price, sqrt_boundary, liquidity, round_up=True)

    if amount_less_fee >= capacity:
        return True, 0

    sqrt_next = next_sqrt_price_from_input(sqrt_price, liquidity, amount_less_fee, zero_for_one)
    if zero_for_one:
        return False, amount1_delta(sqrt_next, sqrt_price, liquidity, round_up=False)
    return False, amount0_delta(sqrt_price, sqrt_next, liquidity, round_up=False)


__all__ = [
    "Q96",
    "MIN_TICK",
    "MAX_TICK",
    "MIN_SQRT_RATIO",
    "MAX_SQRT_RATIO",
    "sqrt_ratio_at_tick",
    "amount0_delta",
    "amount1_delta",
    "next_sqrt_price_from_input",
    "in_range_swap",
]

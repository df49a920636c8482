"""In-memory collaborators.

Deterministic stand-ins for the chain, tick simulator, router and feed
registry. Tests configure exactly the state they need, inject failures per
call and assert on the recorded calls; the CLI and API fall back to
`demo_market()` when no RPC endpoint is configured.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from aggregator import constants as c
from aggregator.amm.concentrated.simulator import StateTickSimulator
from aggregator.amm.pool_address import (
    concentrated_pool_address,
    constant_product_pair_address,
)
from aggregator.config import TICK_SPACING, ChainConfig, ConcentratedVenue, ConstantProductVenue
from aggregator.models.feeds import Denomination, FeedReading
from aggregator.models.types import normalize_address, sort_tokens
from aggregator.result import CallFailure, CallResult

from .interfaces import InRangeCheck, RouterRate, Slot0


@dataclass
class ConcentratedPoolState:
    """State of one concentrated-liquidity pool.

    Attributes:
        liquidity: Active liquidity
        sqrt_price_x96: Current sqrt price (Q64.96)
        tick: Current tick
        tick_lower: Next initialized tick below (zero_for_one boundary)
        tick_upper: Next initialized tick above (one_for_zero boundary)
    """

    liquidity: int
    sqrt_price_x96: int = 2**96
    tick: int = 0
    tick_lower: int = -887272
    tick_upper: int = 887272


class InMemoryChain:
    """ChainReader and PoolStateReader over dictionaries.

    Failures are injected per (method, key): `fail("get_reserves", pair)`
    makes that call return a failed CallResult.
    """

    def __init__(self) -> None:
        self.code: set[str] = set()
        self.reserves: dict[str, tuple[int, int]] = {}
        self.pools: dict[str, ConcentratedPoolState] = {}
        self.balances: dict[tuple[str, str], int] = {}
        self.token_decimals: dict[str, int] = {}
        self.failures: dict[tuple[str, str], CallFailure] = {}
        self.calls: list[tuple[str, str]] = []

    # -- setup ---------------------------------------------------------------

    def deploy(self, address: str) -> str:
        address = normalize_address(address)
        self.code.add(address)
        return address

    def add_pair(
        self,
        venue: ConstantProductVenue,
        token_a: str,
        token_b: str,
        reserve_a: int,
        reserve_b: int,
    ) -> str:
        """Deploy a constant-product pair and return its address."""
        pair = self.deploy(constant_product_pair_address(venue, token_a, token_b))
        token0, _ = sort_tokens(token_a, token_b)
        if normalize_address(token_a) == token0:
            self.reserves[pair] = (reserve_a, reserve_b)
        else:
            self.reserves[pair] = (reserve_b, reserve_a)
        return pair

    def add_concentrated_pool(
        self,
        venue: ConcentratedVenue,
        token_a: str,
        token_b: str,
        fee: int,
        state: ConcentratedPoolState,
        balances: dict[str, int] | None = None,
    ) -> str:
        """Deploy a concentrated pool and return its address.

        Args:
            balances: Token balances held by the pool, keyed by token
        """
        pool = self.deploy(concentrated_pool_address(venue, token_a, token_b, fee))
        self.pools[pool] = state
        for token, amount in (balances or {}).items():
            self.set_balance(token, pool, amount)
        return pool

    def set_balance(self, token: str, holder: str, amount: int) -> None:
        self.balances[(normalize_address(token), normalize_address(holder))] = amount

    def set_decimals(self, token: str, decimals: int) -> None:
        self.token_decimals[normalize_address(token)] = decimals

    def fail(self, method: str, key: str, failure: CallFailure = CallFailure.REVERTED) -> None:
        self.failures[(method, normalize_address(key))] = failure

    def _check(self, method: str, key: str) -> CallResult | None:
        key = normalize_address(key)
        self.calls.append((method, key))
        failure = self.failures.get((method, key))
        if failure is not None:
            return CallResult.fail(failure, f"injected {method} failure")
        return None

    # -- ChainReader -----------------------------------------------------------

    def has_code(self, address: str) -> CallResult[bool]:
        failed = self._check("has_code", address)
        if failed is not None:
            return failed
        return CallResult.ok(normalize_address(address) in self.code)

    def get_reserves(self, pair: str) -> CallResult[tuple[int, int]]:
        failed = self._check("get_reserves", pair)
        if failed is not None:
            return failed
        reserves = self.reserves.get(normalize_address(pair))
        if reserves is None:
            return CallResult.fail(CallFailure.NOT_FOUND, f"no pair at {pair}")
        return CallResult.ok(reserves)

    def get_liquidity(self, pool: str) -> CallResult[int]:
        failed = self._check("get_liquidity", pool)
        if failed is not None:
            return failed
        state = self.pools.get(normalize_address(pool))
        if state is None:
            return CallResult.fail(CallFailure.NOT_FOUND, f"no pool at {pool}")
        return CallResult.ok(state.liquidity)

    def balance_of(self, token: str, holder: str) -> CallResult[int]:
        failed = self._check("balance_of", holder)
        if failed is not None:
            return failed
        return CallResult.ok(
            self.balances.get((normalize_address(token), normalize_address(holder)), 0)
        )

    def decimals(self, token: str) -> CallResult[int]:
        failed = self._check("decimals", token)
        if failed is not None:
            return failed
        value = self.token_decimals.get(normalize_address(token))
        if value is None:
            return CallResult.fail(CallFailure.REVERTED, f"decimals() reverted for {token}")
        return CallResult.ok(value)

    # -- PoolStateReader -------------------------------------------------------

    def slot0(self, pool: str) -> CallResult[Slot0]:
        failed = self._check("slot0", pool)
        if failed is not None:
            return failed
        state = self.pools.get(normalize_address(pool))
        if state is None:
            return CallResult.fail(CallFailure.NOT_FOUND, f"no pool at {pool}")
        return CallResult.ok(Slot0(sqrt_price_x96=state.sqrt_price_x96, tick=state.tick))

    def next_initialized_tick(
        self,
        pool: str,
        tick: int,
        tick_spacing: int,
        zero_for_one: bool,
    ) -> CallResult[int]:
        failed = self._check("next_initialized_tick", pool)
        if failed is not None:
            return failed
        state = self.pools.get(normalize_address(pool))
        if state is None:
            return CallResult.fail(CallFailure.NOT_FOUND, f"no pool at {pool}")
        return CallResult.ok(state.tick_lower if zero_for_one else state.tick_upper)


class ScriptedTickSimulator:
    """TickSimulator returning configured answers per pool.

    Pools without a script answer with a NOT_FOUND failure.
    """

    def __init__(self) -> None:
        self.in_range: dict[str, CallResult[InRangeCheck]] = {}
        self.cross_tick: dict[str, CallResult[int]] = {}
        self.calls: list[tuple[str, str, int, int]] = []  # (method, pool, fee, amount)

    def stays_in_range(self, pool: str, amount_out: int) -> None:
        self.in_range[normalize_address(pool)] = CallResult.ok(InRangeCheck(False, amount_out))

    def crosses_tick(self, pool: str, amount_out: int) -> None:
        pool = normalize_address(pool)
        self.in_range[pool] = CallResult.ok(InRangeCheck(True, 0))
        self.cross_tick[pool] = CallResult.ok(amount_out)

    def fail_in_range(self, pool: str, failure: CallFailure = CallFailure.REVERTED) -> None:
        self.in_range[normalize_address(pool)] = CallResult.fail(failure)

    def fail_cross_tick(self, pool: str, failure: CallFailure = CallFailure.REVERTED) -> None:
        pool = normalize_address(pool)
        self.in_range[pool] = CallResult.ok(InRangeCheck(True, 0))
        self.cross_tick[pool] = CallResult.fail(failure)

    def check_in_range(
        self,
        pool: str,
        token_in: str,
        token_out: str,
        fee: int,
        amount_in: int,
    ) -> CallResult[InRangeCheck]:
        self.calls.append(("check_in_range", normalize_address(pool), fee, amount_in))
        return self.in_range.get(
            normalize_address(pool), CallResult.fail(CallFailure.NOT_FOUND, "unscripted pool")
        )

    def simulate_cross_tick(
        self,
        pool: str,
        token_in: str,
        token_out: str,
        fee: int,
        amount_in: int,
    ) -> CallResult[int]:
        self.calls.append(("simulate_cross_tick", normalize_address(pool), fee, amount_in))
        return self.cross_tick.get(
            normalize_address(pool), CallResult.fail(CallFailure.NOT_FOUND, "unscripted pool")
        )


class StaticCrossTickQuoter:
    """CrossTickQuoter quoting fixed rates per (token_in, token_out, fee).

    Args:
        rates: (token_in, token_out, fee) -> (numerator, denominator)
        default_rate: Rate for unconfigured triples; None means revert
    """

    def __init__(
        self,
        rates: dict[tuple[str, str, int], tuple[int, int]] | None = None,
        default_rate: tuple[int, int] | None = None,
    ) -> None:
        self.rates = {
            (normalize_address(a), normalize_address(b), fee): rate
            for (a, b, fee), rate in (rates or {}).items()
        }
        self.default_rate = default_rate
        self.calls: list[tuple[str, str, int, int]] = []

    def quote_exact_input(
        self,
        token_in: str,
        token_out: str,
        fee: int,
        amount_in: int,
    ) -> CallResult[int]:
        token_in, token_out = normalize_address(token_in), normalize_address(token_out)
        self.calls.append((token_in, token_out, fee, amount_in))
        rate = self.rates.get((token_in, token_out, fee), self.default_rate)
        if rate is None:
            return CallResult.fail(CallFailure.REVERTED, "no liquidity")
        num, denom = rate
        return CallResult.ok(amount_in * num // denom)


@dataclass
class RouterRoute:
    pool: str | None
    numerator: int
    denominator: int


class StaticRouterQuoter:
    """RouterQuoter with fixed per-pair rates and per-pool fees."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], RouterRoute] = {}
        self.fees: dict[str, int] = {}
        self.failing = False
        self.calls: list[tuple[str, str, int]] = []

    def set_route(
        self,
        token_in: str,
        token_out: str,
        pool: str | None,
        rate: tuple[int, int],
        fee: int | None = None,
    ) -> None:
        """Route token_in -> token_out through `pool` at `rate`.

        Args:
            fee: Pool fee in pips, reported by pool_fee()
        """
        self.routes[(normalize_address(token_in), normalize_address(token_out))] = RouterRoute(
            pool=normalize_address(pool) if pool else None,
            numerator=rate[0],
            denominator=rate[1],
        )
        if pool is not None and fee is not None:
            self.fees[normalize_address(pool)] = fee

    def best_rate(self, token_in: str, token_out: str, amount_in: int) -> CallResult[RouterRate]:
        token_in, token_out = normalize_address(token_in), normalize_address(token_out)
        self.calls.append((token_in, token_out, amount_in))
        if self.failing:
            return CallResult.fail(CallFailure.REVERTED, "router reverted")
        route = self.routes.get((token_in, token_out))
        if route is None:
            return CallResult.fail(CallFailure.REVERTED, "no route")
        amount_out = amount_in * route.numerator // route.denominator
        return CallResult.ok(RouterRate(pool=route.pool, amount_out=amount_out))

    def pool_fee(self, pool: str) -> CallResult[int]:
        fee = self.fees.get(normalize_address(pool))
        if fee is None:
            return CallResult.fail(CallFailure.REVERTED, "fee() reverted")
        return CallResult.ok(fee)


@dataclass
class _FeedEntry:
    value: int
    updated_at: int | None


class StaticFeedRegistry:
    """FeedLookup over a fixed table.

    Entries registered without `updated_at` always report the current clock
    time, so long-running demos never go stale.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self.clock = clock
        self.entries: dict[tuple[str, Denomination], _FeedEntry] = {}
        self.failures: dict[tuple[str, Denomination], CallFailure] = {}
        self.calls: list[tuple[str, Denomination]] = []

    def set_price(
        self,
        handle: str,
        denomination: Denomination,
        value: int,
        updated_at: int | None = None,
    ) -> None:
        self.entries[(normalize_address(handle), denomination)] = _FeedEntry(value, updated_at)

    def fail(
        self,
        handle: str,
        denomination: Denomination,
        failure: CallFailure = CallFailure.REVERTED,
    ) -> None:
        self.failures[(normalize_address(handle), denomination)] = failure

    def latest(self, handle: str, denomination: Denomination) -> CallResult[FeedReading]:
        key = (normalize_address(handle), denomination)
        self.calls.append(key)
        failure = self.failures.get(key)
        if failure is not None:
            return CallResult.fail(failure, "injected feed failure")
        entry = self.entries.get(key)
        if entry is None:
            return CallResult.fail(CallFailure.NOT_FOUND, "Feed not found")
        updated_at = entry.updated_at if entry.updated_at is not None else int(self.clock())
        return CallResult.ok(FeedReading(value=entry.value, updated_at=updated_at))


# =============================================================================
# Demo market
# =============================================================================

# A token with dex liquidity against WETH but no price feed
DEMO_TOKEN = "0x00000000000000000000000000000000000d3e00"
DEMO_TOKEN_DECIMALS = 18

# USD prices with 8 decimals
_DEMO_USD_PRICES = {
    c.WETH: 3_000 * 10**8,
    c.WBTC: 60_000 * 10**8,
    c.USDC: 10**8,
    c.USDT: 10**8,
    c.DAI: 10**8,
}


@dataclass
class DemoMarket:
    """Collaborators for a small synthetic mainnet-like market."""

    chain: InMemoryChain
    simulator: StateTickSimulator
    router: StaticRouterQuoter
    feeds: StaticFeedRegistry
    tokens: dict[str, int] = field(default_factory=dict)  # token -> decimals


def _units(token: str, whole: int, decimals: dict[str, int]) -> int:
    return whole * 10 ** decimals[token]


def _pool_state(amount0: int, amount1: int, fee: int) -> ConcentratedPoolState:
    """Pool state centred on the price amount1/amount0, with a wide active range."""
    sqrt_price = math.isqrt((amount1 << 192) // amount0)
    tick = math.floor(math.log(amount1 / amount0, 1.0001))
    spacing = TICK_SPACING[fee]
    base = (tick // spacing) * spacing
    return ConcentratedPoolState(
        liquidity=math.isqrt(amount0 * amount1),
        sqrt_price_x96=sqrt_price,
        tick=tick,
        tick_lower=base - 100 * spacing,
        tick_upper=base + 101 * spacing,
    )


def demo_market(config: ChainConfig) -> DemoMarket:
    """Build in-memory collaborators for `config`.

    Stablecoins, WETH and WBTC trade against each other on every
    configured venue at fixed USD prices; DEMO_TOKEN only trades against
    WETH on the first constant-product venue, so quotes for it exercise the
    oracle's dex bridge.
    """
    decimals = dict(c.WELL_KNOWN_DECIMALS)
    decimals[DEMO_TOKEN] = DEMO_TOKEN_DECIMALS

    chain = InMemoryChain()
    for token, d in decimals.items():
        chain.set_decimals(token, d)

    feeds = StaticFeedRegistry()
    feeds.set_price(c.DENOMINATION_ETH, Denomination.USD, _DEMO_USD_PRICES[c.WETH])
    feeds.set_price(c.DENOMINATION_BTC, Denomination.USD, _DEMO_USD_PRICES[c.WBTC])

    # (token_a, token_b, whole units of token_a in the pool)
    pairs = [
        (c.WETH, c.USDC, 10_000),
        (c.WETH, c.USDT, 5_000),
        (c.WETH, c.DAI, 5_000),
        (c.WBTC, c.WETH, 500),
        (c.USDC, c.USDT, 20_000_000),
        (c.USDC, c.DAI, 20_000_000),
    ]

    router = StaticRouterQuoter()
    rates: dict[tuple[str, str, int], tuple[int, int]] = {}

    for token_a, token_b, depth in pairs:
        amount_a = _units(token_a, depth, decimals)
        value_usd = depth * _DEMO_USD_PRICES[token_a]
        amount_b = value_usd * 10 ** decimals[token_b] // _DEMO_USD_PRICES[token_b]

        for scale, venue in enumerate(config.constant_product_venues, start=1):
            chain.add_pair(venue, token_a, token_b, amount_a // scale, amount_b // scale)

        venue_cl = config.concentrated_venue
        if venue_cl is not None:
            fee = config.preferred_tier(token_a, token_b) or venue_cl.fee_tiers[-1]
            token0, _ = sort_tokens(token_a, token_b)
            amount0, amount1 = (
                (amount_a, amount_b) if normalize_address(token_a) == token0 else (amount_b, amount_a)
            )
            chain.add_concentrated_pool(
                venue_cl,
                token_a,
                token_b,
                fee,
                _pool_state(amount0, amount1, fee),
                balances={token_a: amount_a, token_b: amount_b},
            )
            keep = 1_000_000 - fee
            rates[(token_a, token_b, fee)] = (amount_b * keep, amount_a * 1_000_000)
            rates[(token_b, token_a, fee)] = (amount_a * keep, amount_b * 1_000_000)

        # Router quotes 0.05% worse than mid price on a pool it picks itself
        pool = None
        if config.constant_product_venues:
            first = config.constant_product_venues[0]
            pool = constant_product_pair_address(first, token_a, token_b)
        router.set_route(token_a, token_b, pool, (amount_b * 9995, amount_a * 10_000), fee=3000)
        router.set_route(token_b, token_a, pool, (amount_a * 9995, amount_b * 10_000), fee=3000)

    if config.constant_product_venues:
        demo_weth = _units(c.WETH, 200, decimals)
        demo_amount = 1_000_000 * 10**DEMO_TOKEN_DECIMALS  # 1 DEMO = 0.0002 WETH
        chain.add_pair(config.constant_product_venues[0], DEMO_TOKEN, c.WETH, demo_amount, demo_weth)

    simulator = StateTickSimulator(chain, StaticCrossTickQuoter(rates))
    return DemoMarket(chain=chain, simulator=simulator, router=router, feeds=feeds, tokens=decimals)


__all__ = [
    "ConcentratedPoolState",
    "DEMO_TOKEN",
    "DemoMarket",
    "InMemoryChain",
    "ScriptedTickSimulator",
    "StaticCrossTickQuoter",
    "StaticFeedRegistry",
    "StaticRouterQuoter",
    "demo_market",
]

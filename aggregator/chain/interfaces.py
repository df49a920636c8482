"""Interfaces of the external collaborators the aggregator consumes.

Every method returns a CallResult: implementations translate reverts,
timeouts and transport errors into a failure reason instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from aggregator.models.feeds import Denomination, FeedReading
from aggregator.result import CallResult


@dataclass(frozen=True)
class InRangeCheck:
    """Answer to "does this swap stay inside the active tick?"."""

    crosses_tick: bool
    in_range_output: int


@dataclass(frozen=True)
class RouterRate:
    """Best rate reported by an aggregator router."""

    pool: str | None
    amount_out: int


@dataclass(frozen=True)
class Slot0:
    sqrt_price_x96: int
    tick: int


class ChainReader(Protocol):
    """Pool state and token metadata reads."""

    def has_code(self, address: str) -> CallResult[bool]:
        """Whether a contract is deployed at `address`."""
        ...

    def get_reserves(self, pair: str) -> CallResult[tuple[int, int]]:
        """Constant-product reserves as (reserve0, reserve1) in sorted-token order."""
        ...

    def get_liquidity(self, pool: str) -> CallResult[int]:
        """Active liquidity of a concentrated-liquidity pool."""
        ...

    def balance_of(self, token: str, holder: str) -> CallResult[int]:
        ...

    def decimals(self, token: str) -> CallResult[int]:
        ...


class PoolStateReader(Protocol):
    """Tick state needed to answer in-range questions locally."""

    def slot0(self, pool: str) -> CallResult[Slot0]:
        ...

    def get_liquidity(self, pool: str) -> CallResult[int]:
        ...

    def next_initialized_tick(
        self,
        pool: str,
        tick: int,
        tick_spacing: int,
        zero_for_one: bool,
    ) -> CallResult[int]:
        """Nearest tick boundary in the swap direction where liquidity may change."""
        ...


class TickSimulator(Protocol):
    """Concentrated-liquidity swap simulation."""

    def check_in_range(
        self,
        pool: str,
        token_in: str,
        token_out: str,
        fee: int,
        amount_in: int,
    ) -> CallResult[InRangeCheck]:
        ...

    def simulate_cross_tick(
        self,
        pool: str,
        token_in: str,
        token_out: str,
        fee: int,
        amount_in: int,
    ) -> CallResult[int]:
        ...


class CrossTickQuoter(Protocol):
    """Full swap simulation (QuoterV2 style)."""

    def quote_exact_input(
        self,
        token_in: str,
        token_out: str,
        fee: int,
        amount_in: int,
    ) -> CallResult[int]:
        ...


class RouterQuoter(Protocol):
    """Aggregator-router best-rate queries."""

    def best_rate(self, token_in: str, token_out: str, amount_in: int) -> CallResult[RouterRate]:
        ...

    def pool_fee(self, pool: str) -> CallResult[int]:
        """Pool fee in hundredths of a basis point."""
        ...


class FeedLookup(Protocol):
    """Latest answer of a price feed."""

    def latest(self, handle: str, denomination: Denomination) -> CallResult[FeedReading]:
        ...


__all__ = [
    "ChainReader",
    "CrossTickQuoter",
    "FeedLookup",
    "InRangeCheck",
    "PoolStateReader",
    "RouterQuoter",
    "RouterRate",
    "Slot0",
    "TickSimulator",
]

"""Price feed and token metadata types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Denomination(str, Enum):
    """Reference unit a feed is quoted against."""

    USD = "USD"
    ETH = "ETH"
    BTC = "BTC"

    @property
    def scale(self) -> int:
        """Fixed-point scale of feed values in this denomination."""
        return 10**18 if self is Denomination.ETH else 10**8


@dataclass(frozen=True)
class FeedSpec:
    """Where to read a feed and how fresh it must be."""

    handle: str
    staleness_seconds: int


@dataclass(frozen=True)
class FeedReading:
    """Raw answer from a feed lookup."""

    value: int
    updated_at: int


@dataclass(frozen=True)
class PriceFeedEntry:
    """A feed reading bound to its base token, denomination and window."""

    base: str
    denomination: Denomination
    value: int
    updated_at: int
    staleness_seconds: int

    def age(self, now: int) -> int:
        return now - self.updated_at

    def is_stale(self, now: int) -> bool:
        return self.age(now) > self.staleness_seconds


@dataclass(frozen=True)
class TokenMeta:
    address: str
    decimals: int

    @property
    def unit(self) -> int:
        """One whole token in smallest units."""
        return 10**self.decimals


__all__ = ["Denomination", "FeedSpec", "FeedReading", "PriceFeedEntry", "TokenMeta"]

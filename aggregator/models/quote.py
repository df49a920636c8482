"""Quote and query value types.

Every value here is produced fresh for a single top-level call and never
outlives it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum


class SourceKind(str, Enum):
    """Kind of venue a quote came from."""

    ROUTER = "router"
    CONSTANT_PRODUCT = "constant_product"
    CONCENTRATED = "concentrated"
    ORACLE = "oracle"


@dataclass(frozen=True)
class Quote:
    """Best output found for a swap through one source.

    Attributes:
        kind: Venue type that produced the quote
        venue: Name of the registered source (e.g. "uniswap_v2")
        amount_out: Output in token_out smallest units; 0 means "no usable quote"
        pools: Pool handles along the route, in hop order (None when unknown)
        fees: Per-pool fee in basis points, aligned by index with `pools`
    """

    kind: SourceKind
    venue: str
    amount_out: int
    pools: tuple[str | None, ...] = ()
    fees: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if self.amount_out < 0:
            raise ValueError(f"amount_out cannot be negative: {self.amount_out}")
        if len(self.pools) != len(self.fees):
            raise ValueError("pools and fees must be aligned")

    @property
    def hops(self) -> int:
        return len(self.pools)

    def with_amount(self, amount_out: int) -> Quote:
        """Copy of this quote with a different output amount."""
        return replace(self, amount_out=amount_out)

    def then(self, next_hop: Quote) -> Quote:
        """Join this quote with the hop that consumes its output.

        A zero first hop yields a zero result; the route's pools are kept
        for reporting either way.
        """
        amount = next_hop.amount_out if self.amount_out > 0 else 0
        return Quote(
            kind=self.kind,
            venue=self.venue,
            amount_out=amount,
            pools=self.pools + next_hop.pools,
            fees=self.fees + next_hop.fees,
        )

    @classmethod
    def empty(cls, kind: SourceKind, venue: str) -> Quote:
        """A zero quote carrying a single null pool handle."""
        return cls(kind=kind, venue=venue, amount_out=0, pools=(None,), fees=(0,))


@dataclass(frozen=True)
class Query:
    """Inputs for one route search.

    `connector_leg` is an already-computed token_in -> connector quote; a
    bridged candidate from the same venue reuses it instead of quoting
    the first hop again.
    """

    token_in: str
    token_out: str
    amount_in: int
    connector_token: str
    connector_leg: Quote | None = None

    def __post_init__(self) -> None:
        if self.amount_in <= 0:
            raise ValueError(f"amount_in must be positive: {self.amount_in}")


@dataclass(frozen=True)
class FeedQuote:
    """Output estimated from price feeds.

    Attributes:
        final_quote: Estimated output in token_out units; 0 when unresolvable
        bridge_leg_amount: Base-asset amount that went through the dex bridge, if any
        bridge_source_kind: Kind of the dex source that produced the bridge leg
        bridge_leg: The dex quote used for the side without a feed
        bridge_from_input: True when the bridge leg was token_in -> base asset
    """

    final_quote: int
    bridge_leg_amount: int = 0
    bridge_source_kind: SourceKind | None = None
    bridge_leg: Quote | None = field(default=None, compare=False)
    bridge_from_input: bool = False

    @property
    def has_opinion(self) -> bool:
        return self.final_quote > 0

    @property
    def used_bridge(self) -> bool:
        return self.bridge_leg is not None

    @property
    def connector_leg(self) -> Quote | None:
        """The bridge leg when it can stand in for a token_in -> connector hop."""
        return self.bridge_leg if self.bridge_from_input else None

    @classmethod
    def none(cls) -> FeedQuote:
        """No oracle opinion."""
        return cls(final_quote=0)


__all__ = ["SourceKind", "Quote", "Query", "FeedQuote"]

"""Contract shared by all quote sources."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from aggregator.models.quote import Quote, SourceKind


@runtime_checkable
class QuoteSource(Protocol):
    """One liquidity venue that can quote exact-input swaps.

    Implementations never raise for venue problems: a missing pool, a
    failed call or a revert all produce a zero-amount Quote.

    Attributes:
        name: Venue name reported in quotes
        kind: Venue type
        bridgeable: Whether the source takes part in connector-bridged candidates
    """

    name: str
    kind: SourceKind
    bridgeable: bool

    def quote(self, token_in: str, token_out: str, amount_in: int) -> Quote:
        """Best single-hop output for `amount_in` of token_in."""
        ...

    def exists(self, token_in: str, token_out: str) -> bool:
        """Whether the venue has a deployed pool for the pair."""
        ...


__all__ = ["QuoteSource"]

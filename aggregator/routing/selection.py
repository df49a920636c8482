"""Winner selection over enumerated candidates."""

from __future__ import annotations

from collections.abc import Iterable

from aggregator.models.quote import Quote


def select_best(quotes: Iterable[Quote]) -> Quote | None:
    """Highest amount_out; ties keep the earliest candidate.

    When every candidate is zero the first one is returned, so the caller
    still gets a (zero) quote tagged with the first enumerated source.

    Returns:
        The winning quote, or None for an empty candidate list
    """
    best: Quote | None = None
    for quote in quotes:
        if best is None or quote.amount_out > best.amount_out:
            best = quote
    return best


__all__ = ["select_best"]

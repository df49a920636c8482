"""Fan-out over quote sources and best-quote selection.

Every registered source gets a direct candidate. When neither side of the
pair is the connector token, each bridgeable source also gets a two-hop
candidate token_in -> connector -> token_out. Candidates are independent,
so they run concurrently; selection happens after the join, in
enumeration order.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

import structlog

from aggregator.amm.base import QuoteSource
from aggregator.models.quote import Query, Quote
from aggregator.models.types import same_token

from .selection import select_best

logger = structlog.get_logger()


@dataclass(frozen=True)
class Candidate:
    """One (source, direct-or-bridged) route to evaluate."""

    source: QuoteSource
    bridged: bool = False

    @property
    def label(self) -> str:
        return f"{self.source.name}:{'bridged' if self.bridged else 'direct'}"


class RouteAggregator:
    """Evaluates all candidates for a query and picks the best.

    Args:
        sources: Registered quote sources, in enumeration order
        max_workers: Most threads one call may use; 0 evaluates candidates
            sequentially in the calling thread. Each call gets its own pool,
            so a branch stuck past its deadline never holds a thread another
            call needs. Keep it at least the candidate count (two per source)
            so a stuck branch cannot delay a queued one either.
        branch_timeout: Seconds to wait for all branches; branches still
            running afterwards count as zero quotes. None waits forever.
    """

    def __init__(
        self,
        sources: Sequence[QuoteSource],
        max_workers: int = 8,
        branch_timeout: float | None = None,
    ) -> None:
        if not sources:
            raise ValueError("RouteAggregator needs at least one quote source")
        if max_workers < 0:
            raise ValueError(f"max_workers cannot be negative: {max_workers}")
        self.sources = tuple(sources)
        self.max_workers = max_workers
        self.branch_timeout = branch_timeout

    def candidates(self, query: Query) -> list[Candidate]:
        """Direct candidates for every source, then bridged ones if applicable."""
        result = [Candidate(source) for source in self.sources]

        touches_connector = same_token(query.token_in, query.connector_token) or same_token(
            query.token_out, query.connector_token
        )
        if not touches_connector:
            result.extend(Candidate(s, bridged=True) for s in self.sources if s.bridgeable)
        return result

    def bridged_quote(self, source: QuoteSource, query: Query) -> Quote:
        """Two-hop quote through the connector token.

        A zero first hop is returned as-is; the second hop is never tried.
        A precomputed connector leg from the same venue replaces hop 1.
        """
        leg = query.connector_leg
        if leg is not None and leg.venue == source.name:
            hop1 = leg
        else:
            hop1 = source.quote(query.token_in, query.connector_token, query.amount_in)

        if hop1.amount_out == 0:
            return hop1

        hop2 = source.quote(query.connector_token, query.token_out, hop1.amount_out)
        return hop1.then(hop2)

    def evaluate(self, candidate: Candidate, query: Query) -> Quote:
        if candidate.bridged:
            return self.bridged_quote(candidate.source, query)
        return candidate.source.quote(query.token_in, query.token_out, query.amount_in)

    def quote_all(self, query: Query) -> list[Quote]:
        """Quotes for every candidate, in enumeration order."""
        candidates = self.candidates(query)

        if self.max_workers == 0:
            return [self.evaluate(candidate, query) for candidate in candidates]

        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(candidates)), thread_name_prefix="quote"
        )
        try:
            futures: list[Future[Quote]] = [
                executor.submit(self.evaluate, candidate, query) for candidate in candidates
            ]
            wait(futures, timeout=self.branch_timeout)

            quotes = []
            for candidate, future in zip(candidates, futures, strict=True):
                if future.done():
                    quotes.append(future.result())
                else:
                    logger.warning(
                        "quote_branch_timed_out",
                        candidate=candidate.label,
                        timeout=self.branch_timeout,
                    )
                    quotes.append(Quote.empty(candidate.source.kind, candidate.source.name))
            return quotes
        finally:
            # Stuck branches keep their threads until they return
            executor.shutdown(wait=False, cancel_futures=True)

    def best(self, query: Query) -> Quote:
        """Best quote across all candidates (zero if nothing is quotable)."""
        quotes = self.quote_all(query)
        best = select_best(quotes)
        if best is None:
            raise ValueError(f"no candidates for {query.token_in} -> {query.token_out}")
        logger.debug(
            "best_quote_selected",
            token_in=query.token_in,
            token_out=query.token_out,
            amount_in=query.amount_in,
            venue=best.venue,
            amount_out=best.amount_out,
            candidates=len(quotes),
        )
        return best


__all__ = ["Candidate", "RouteAggregator"]

"""Feed reads with staleness enforcement."""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog

from aggregator.chain.interfaces import FeedLookup
from aggregator.config import ChainConfig
from aggregator.errors import StaleFeedError
from aggregator.models.feeds import Denomination, PriceFeedEntry
from aggregator.models.types import normalize_address

logger = structlog.get_logger()


class FeedReader:
    """Reads configured feeds and rejects stale answers.

    A missing feed, a failed lookup or a non-positive answer all mean
    "no price" (None). An answer older than the feed's window is a hard
    failure regardless of its value.

    Args:
        lookup: Feed lookup collaborator
        config: Chain config holding the feed table
        clock: Returns the current unix time
    """

    def __init__(
        self,
        lookup: FeedLookup,
        config: ChainConfig,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.lookup = lookup
        self.config = config
        self.clock = clock

    def has_feed(self, token: str, denomination: Denomination) -> bool:
        return self.config.has_feed(token, denomination)

    def read(self, token: str, denomination: Denomination) -> PriceFeedEntry | None:
        """Fresh, positive feed entry for (token, denomination), or None.

        Raises:
            StaleFeedError: If the feed answered with data older than its window
        """
        spec = self.config.feed_for(token, denomination)
        if spec is None:
            return None

        result = self.lookup.latest(spec.handle, denomination)
        if result.is_error or result.value is None:
            logger.debug(
                "feed_lookup_failed",
                token=token,
                denomination=denomination.value,
                failure=result.failure,
            )
            return None

        entry = PriceFeedEntry(
            base=normalize_address(token),
            denomination=denomination,
            value=result.value.value,
            updated_at=result.value.updated_at,
            staleness_seconds=spec.staleness_seconds,
        )

        now = int(self.clock())
        if entry.is_stale(now):
            logger.warning(
                "stale_feed",
                token=entry.base,
                denomination=denomination.value,
                updated_at=entry.updated_at,
                age=entry.age(now),
                window=entry.staleness_seconds,
            )
            raise StaleFeedError(
                entry.base, denomination.value, entry.updated_at, now, entry.staleness_seconds
            )

        if entry.value <= 0:
            logger.debug("feed_non_positive", token=entry.base, value=entry.value)
            return None
        return entry

    def price(self, token: str, denomination: Denomination) -> int | None:
        entry = self.read(token, denomination)
        return entry.value if entry is not None else None


__all__ = ["FeedReader"]

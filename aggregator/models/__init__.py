"""Value types and HTTP schemas."""

from aggregator.models.feeds import Denomination, FeedReading, FeedSpec, PriceFeedEntry, TokenMeta
from aggregator.models.quote import FeedQuote, Query, Quote, SourceKind
from aggregator.models.types import Address, Uint256, normalize_address, sort_tokens

__all__ = [
    # Types
    "Address",
    "Uint256",
    "normalize_address",
    "sort_tokens",
    # Quotes
    "Quote",
    "Query",
    "FeedQuote",
    "SourceKind",
    # Feeds
    "Denomination",
    "FeedReading",
    "FeedSpec",
    "PriceFeedEntry",
    "TokenMeta",
]

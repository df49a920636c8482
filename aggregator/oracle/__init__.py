"""Price-feed based output estimation."""

from aggregator.oracle.feeds import FeedReader
from aggregator.oracle.resolver import OracleFeedResolver, UsdPrices

__all__ = ["FeedReader", "OracleFeedResolver", "UsdPrices"]

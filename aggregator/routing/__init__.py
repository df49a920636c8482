"""Candidate enumeration and best-quote selection."""

from aggregator.routing.aggregator import Candidate, RouteAggregator
from aggregator.routing.selection import select_best

__all__ = ["Candidate", "RouteAggregator", "select_best"]

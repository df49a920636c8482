"""Hard failures that abort a top-level call.

Missing liquidity is never an error: it is a zero-amount Quote. These
exceptions cover the cases where a caller must be able to tell that
something was found and rejected, or that a change was not allowed.
"""

from __future__ import annotations


class AggregatorError(Exception):
    """Base error for the quote aggregator."""

    pass


class StaleFeedError(AggregatorError):
    """A price feed answer is older than its freshness window."""

    def __init__(self, base: str, denomination: str, updated_at: int, now: int, window: int):
        self.base = base
        self.denomination = denomination
        self.updated_at = updated_at
        self.now = now
        self.window = window
        super().__init__(
            f"Stale {denomination} feed for {base}: updated at {updated_at}, "
            f"age {now - updated_at}s exceeds {window}s"
        )


class SlippageExceededError(AggregatorError):
    """A dex quote fell below the oracle-derived tolerance band."""

    def __init__(self, amount_out: int, reference: int, minimum: int, tolerance_bps: int):
        self.amount_out = amount_out
        self.reference = reference
        self.minimum = minimum
        self.tolerance_bps = tolerance_bps
        super().__init__(
            f"Dex output {amount_out} below minimum {minimum} "
            f"(oracle {reference}, tolerance {tolerance_bps} bps)"
        )


class UnauthorizedError(AggregatorError):
    """Caller is not the operator allowed to change settings."""

    def __init__(self, caller: str):
        self.caller = caller
        super().__init__(f"Caller {caller} is not authorized to change settings")


class SettingOutOfRangeError(AggregatorError):
    """An administrative value is outside its allowed range."""

    def __init__(self, name: str, value: int, maximum: int):
        self.name = name
        self.value = value
        self.maximum = maximum
        super().__init__(f"{name} must be in [0, {maximum}), got {value}")


__all__ = [
    "AggregatorError",
    "StaleFeedError",
    "SlippageExceededError",
    "UnauthorizedError",
    "SettingOutOfRangeError",
]

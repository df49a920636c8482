"""Dex-versus-oracle validation for executable quotes."""

from __future__ import annotations

import structlog

from aggregator.constants import BPS
from aggregator.errors import SlippageExceededError
from aggregator.models.quote import FeedQuote, Quote
from aggregator.safe_int import S

logger = structlog.get_logger()


def minimum_acceptable(reference: int, tolerance_bps: int) -> int:
    """Smallest output within `tolerance_bps` of `reference` (rounded up)."""
    return (S(reference) * S(BPS - tolerance_bps)).ceildiv(BPS).value


def within_tolerance(amount_out: int, reference: int, tolerance_bps: int) -> bool:
    """amount_out >= reference * (1 - tolerance), in exact integer arithmetic."""
    return amount_out * BPS >= reference * (BPS - tolerance_bps)


class SafetyValidator:
    """Rejects dex quotes that fall too far below the oracle reference.

    A feed quote without an opinion (zero) cannot invalidate anything, so
    validation passes.
    """

    def validate(self, dex_quote: Quote, feed_quote: FeedQuote, tolerance_bps: int) -> None:
        """Check the dex output against the oracle band.

        Raises:
            ValueError: If tolerance_bps is outside [0, 10000]
            SlippageExceededError: If the dex output is below the band
        """
        if not 0 <= tolerance_bps <= BPS:
            raise ValueError(f"tolerance_bps must be in [0, {BPS}], got {tolerance_bps}")

        if not feed_quote.has_opinion:
            logger.debug("safety_check_skipped", reason="no_oracle_opinion")
            return

        reference = feed_quote.final_quote
        if within_tolerance(dex_quote.amount_out, reference, tolerance_bps):
            return

        minimum = minimum_acceptable(reference, tolerance_bps)
        logger.warning(
            "slippage_exceeded",
            venue=dex_quote.venue,
            amount_out=dex_quote.amount_out,
            reference=reference,
            minimum=minimum,
            tolerance_bps=tolerance_bps,
        )
        raise SlippageExceededError(dex_quote.amount_out, reference, minimum, tolerance_bps)


__all__ = ["SafetyValidator", "minimum_acceptable", "within_tolerance"]

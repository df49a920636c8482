"""Tests for the dex-versus-oracle safety check."""

import pytest

from aggregator.errors import SlippageExceededError
from aggregator.models.quote import FeedQuote, Quote, SourceKind
from aggregator.safety import SafetyValidator, minimum_acceptable, within_tolerance


def dex(amount_out: int) -> Quote:
    return Quote(SourceKind.CONSTANT_PRODUCT, "uniswap_v2", amount_out, ("pool",), (30,))


class TestToleranceBand:
    """Band arithmetic is exact."""

    def test_boundary(self):
        assert within_tolerance(950, 1000, 500)
        assert not within_tolerance(949, 1000, 500)

    def test_minimum_rounds_up(self):
        assert minimum_acceptable(1000, 500) == 950
        assert minimum_acceptable(999, 500) == 950  # 949.05 -> 950

    def test_zero_tolerance_requires_full_reference(self):
        assert within_tolerance(1000, 1000, 0)
        assert not within_tolerance(999, 1000, 0)

    def test_full_tolerance_accepts_anything(self):
        assert within_tolerance(0, 1000, 10_000)


class TestSafetyValidator:
    """Validation outcomes."""

    def test_passes_inside_band(self):
        SafetyValidator().validate(dex(950), FeedQuote(final_quote=1000), 500)

    def test_rejects_below_band(self):
        with pytest.raises(SlippageExceededError) as exc_info:
            SafetyValidator().validate(dex(949), FeedQuote(final_quote=1000), 500)
        error = exc_info.value
        assert error.amount_out == 949
        assert error.reference == 1000
        assert error.minimum == 950
        assert error.tolerance_bps == 500

    def test_no_opinion_passes(self):
        """Without an oracle reference there is nothing to compare against."""
        SafetyValidator().validate(dex(1), FeedQuote.none(), 0)

    def test_zero_dex_quote_fails_against_opinion(self):
        with pytest.raises(SlippageExceededError):
            SafetyValidator().validate(dex(0), FeedQuote(final_quote=1000), 300)

    @pytest.mark.parametrize("tolerance", [-1, 10_001])
    def test_tolerance_out_of_range(self, tolerance):
        with pytest.raises(ValueError):
            SafetyValidator().validate(dex(1000), FeedQuote(final_quote=1000), tolerance)

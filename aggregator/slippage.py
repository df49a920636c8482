"""Lenient pricing: a fixed haircut on top of any swap finder."""

from __future__ import annotations

from typing import Protocol

from aggregator.admin import AdminSettings
from aggregator.constants import BPS
from aggregator.models.quote import Quote


class SwapFinder(Protocol):
    """Top-level quoting operations."""

    settings: AdminSettings

    def is_pair_supported(self, token_in: str, token_out: str, amount_in: int) -> bool: ...

    def find_optimal_swap(self, token_in: str, token_out: str, amount_in: int) -> Quote: ...

    def find_executable_swap(self, token_in: str, token_out: str, amount_in: int) -> Quote: ...

    def unsafe_find_executable_swap(
        self, token_in: str, token_out: str, amount_in: int
    ) -> Quote: ...


def apply_haircut(amount: int, haircut_bps: int) -> int:
    """amount * (10000 - haircut) / 10000, floored."""
    return amount * (BPS - haircut_bps) // BPS


class SlippagePolicy:
    """Wraps a SwapFinder and discounts every non-zero quote.

    The haircut is read from the shared settings on each call, so operator
    updates apply immediately. A zero quote stays zero.

    Example:
        lenient = SlippagePolicy(engine)
        quote = lenient.find_optimal_swap(WETH, USDC, 10**18)
    """

    def __init__(self, inner: SwapFinder, settings: AdminSettings | None = None) -> None:
        self.inner = inner
        self.settings = settings if settings is not None else inner.settings

    def _discount(self, quote: Quote) -> Quote:
        if quote.amount_out == 0:
            return quote
        return quote.with_amount(apply_haircut(quote.amount_out, self.settings.slippage_bps))

    def is_pair_supported(self, token_in: str, token_out: str, amount_in: int) -> bool:
        return self.inner.is_pair_supported(token_in, token_out, amount_in)

    def find_optimal_swap(self, token_in: str, token_out: str, amount_in: int) -> Quote:
        return self._discount(self.inner.find_optimal_swap(token_in, token_out, amount_in))

    def find_executable_swap(self, token_in: str, token_out: str, amount_in: int) -> Quote:
        return self._discount(self.inner.find_executable_swap(token_in, token_out, amount_in))

    def unsafe_find_executable_swap(self, token_in: str, token_out: str, amount_in: int) -> Quote:
        return self._discount(
            self.inner.unsafe_find_executable_swap(token_in, token_out, amount_in)
        )


__all__ = ["SlippagePolicy", "SwapFinder", "apply_haircut"]

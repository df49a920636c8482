"""Output estimation from price feeds.

Resolution order, stopping at the first answer:

1. Base asset against a token with a base-asset (ETH) feed: one feed read.
2. USD price for both tokens (stablecoins are pinned at 1 USD, the base
   asset and BTC-pegged assets use the shared ETH/USD and BTC/USD reads,
   other tokens try USD, then ETH, then BTC feeds).
3. Both USD prices known: cross rate, scaled by decimals.
4. One side unknown: bridge that side through the base asset on the dex
   and convert the bridged amount with the known side's USD price.
5. Nothing known: no opinion (zero), never an error.

Only a stale feed raises.
"""

from __future__ import annotations

import structlog

from aggregator.chain.interfaces import ChainReader
from aggregator.config import ChainConfig
from aggregator.models.feeds import Denomination, TokenMeta
from aggregator.models.quote import FeedQuote, Query
from aggregator.models.types import normalize_address
from aggregator.routing.aggregator import RouteAggregator

from .feeds import FeedReader

logger = structlog.get_logger()

USD_SCALE = Denomination.USD.scale
ETH_SCALE = Denomination.ETH.scale
BTC_SCALE = Denomination.BTC.scale


def _convert(price: int, reference_usd: int | None, scale: int) -> int | None:
    """USD price from a price in another denomination; a result that floors to 0 is no price."""
    if reference_usd is None:
        return None
    usd = price * reference_usd // scale
    return usd if usd > 0 else None


class UsdPrices:
    """USD prices (8 decimals) for one resolution.

    The ETH/USD and BTC/USD answers are read at most once and shared by
    both tokens of the pair.
    """

    def __init__(self, feeds: FeedReader, config: ChainConfig) -> None:
        self.feeds = feeds
        self.config = config
        self._shared: dict[str, int | None] = {}

    def _shared_price(self, key: str, token: str) -> int | None:
        if key not in self._shared:
            self._shared[key] = self.feeds.price(token, Denomination.USD)
        return self._shared[key]

    @property
    def eth_usd(self) -> int | None:
        return self._shared_price("eth_usd", self.config.base_asset)

    @property
    def btc_usd(self) -> int | None:
        return self._shared_price("btc_usd", self.config.btc_reference)

    def resolve(self, token: str) -> int | None:
        if self.config.is_stablecoin(token):
            return USD_SCALE
        if self.config.is_base_asset(token):
            return self.eth_usd

        direct = self.feeds.price(token, Denomination.USD)
        if direct is not None:
            return direct

        if self.config.is_btc_asset(token):
            # Pegged 1:1 to BTC
            return self.btc_usd

        in_eth = self.feeds.price(token, Denomination.ETH)
        if in_eth is not None:
            derived = _convert(in_eth, self.eth_usd, ETH_SCALE)
            if derived is not None:
                return derived

        in_btc = self.feeds.price(token, Denomination.BTC)
        if in_btc is not None:
            return _convert(in_btc, self.btc_usd, BTC_SCALE)

        return None


class OracleFeedResolver:
    """Estimates swap output from price feeds, bridging one side on the dex if needed.

    Args:
        config: Chain configuration (base asset, stablecoins, feed table)
        feeds: Feed reader enforcing staleness
        chain: Decimals lookup for tokens without a shortcut
        dex: Route aggregator used for the bridge leg
    """

    def __init__(
        self,
        config: ChainConfig,
        feeds: FeedReader,
        chain: ChainReader,
        dex: RouteAggregator,
    ) -> None:
        self.config = config
        self.feeds = feeds
        self.chain = chain
        self.dex = dex

    def token(self, token: str) -> TokenMeta | None:
        """Token metadata, from the decimals shortcuts or the chain."""
        decimals = self.config.decimals_shortcut(token)
        if decimals is None:
            result = self.chain.decimals(token)
            if result.is_error or result.value is None:
                logger.debug("decimals_lookup_failed", token=token, failure=result.failure)
                return None
            decimals = result.value
        return TokenMeta(address=normalize_address(token), decimals=decimals)

    def _units(self, *tokens: str) -> list[int] | None:
        units = []
        for token in tokens:
            meta = self.token(token)
            if meta is None:
                return None
            units.append(meta.unit)
        return units

    def resolve(self, token_in: str, token_out: str, amount_in: int) -> FeedQuote:
        """Feed-based output for `amount_in` of token_in.

        Raises:
            StaleFeedError: If any feed consulted is older than its window
        """
        return self._resolve(token_in, token_out, amount_in, bridge=True)

    def resolve_without_bridge(self, token_in: str, token_out: str, amount_in: int) -> FeedQuote:
        """Like resolve(), but never prices an unfed side on the dex.

        Raises:
            StaleFeedError: If any feed consulted is older than its window
        """
        return self._resolve(token_in, token_out, amount_in, bridge=False)

    def _resolve(self, token_in: str, token_out: str, amount_in: int, bridge: bool) -> FeedQuote:
        token_in = normalize_address(token_in)
        token_out = normalize_address(token_out)

        direct = self._resolve_against_base(token_in, token_out, amount_in)
        if direct is not None:
            return direct

        prices = UsdPrices(self.feeds, self.config)
        price_in = prices.resolve(token_in)
        price_out = prices.resolve(token_out)

        if price_in is not None and price_out is not None:
            return self._cross_rate(token_in, token_out, amount_in, price_in, price_out)
        if not bridge:
            return FeedQuote.none()
        if price_out is not None:
            return self._bridge_input(token_in, token_out, amount_in, price_out, prices)
        if price_in is not None:
            return self._bridge_output(token_in, token_out, amount_in, price_in, prices)

        logger.debug("feed_unresolved", token_in=token_in, token_out=token_out)
        return FeedQuote.none()

    def _resolve_against_base(
        self, token_in: str, token_out: str, amount_in: int
    ) -> FeedQuote | None:
        base = self.config.base_asset
        if token_in == base and self.config.has_feed(token_out, Denomination.ETH):
            other, selling_base = token_out, True
        elif token_out == base and self.config.has_feed(token_in, Denomination.ETH):
            other, selling_base = token_in, False
        else:
            return None

        price = self.feeds.price(other, Denomination.ETH)
        if price is None:
            return None

        units = self._units(token_in, token_out)
        if units is None:
            return FeedQuote.none()
        unit_in, unit_out = units

        if selling_base:
            # price is base units per whole token_out, 18 decimals
            final = amount_in * ETH_SCALE * unit_out // (price * unit_in)
        else:
            final = amount_in * price * unit_out // (ETH_SCALE * unit_in)
        return FeedQuote(final_quote=final)

    def _cross_rate(
        self, token_in: str, token_out: str, amount_in: int, price_in: int, price_out: int
    ) -> FeedQuote:
        units = self._units(token_in, token_out)
        if units is None:
            return FeedQuote.none()
        unit_in, unit_out = units
        final = amount_in * price_in * unit_out // (price_out * unit_in)
        return FeedQuote(final_quote=final)

    def _bridge_input(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        price_out: int,
        prices: UsdPrices,
    ) -> FeedQuote:
        """token_in has no price: sell it for the base asset on the dex."""
        base = self.config.base_asset
        eth_usd = prices.eth_usd
        units = self._units(base, token_out)
        if eth_usd is None or units is None:
            return FeedQuote.none()
        unit_base, unit_out = units

        leg = self.dex.best(Query(token_in, base, amount_in, self.config.connector))
        if leg.amount_out == 0:
            logger.debug("feed_bridge_empty", token_in=token_in, side="input")
            return FeedQuote.none()

        final = leg.amount_out * eth_usd * unit_out // (price_out * unit_base)
        return FeedQuote(
            final_quote=final,
            bridge_leg_amount=leg.amount_out,
            bridge_source_kind=leg.kind,
            bridge_leg=leg,
            bridge_from_input=True,
        )

    def _bridge_output(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        price_in: int,
        prices: UsdPrices,
    ) -> FeedQuote:
        """token_out has no price: value the input in base asset, buy on the dex."""
        base = self.config.base_asset
        eth_usd = prices.eth_usd
        units = self._units(base, token_in)
        if eth_usd is None or units is None:
            return FeedQuote.none()
        unit_base, unit_in = units

        base_amount = amount_in * price_in * unit_base // (eth_usd * unit_in)
        if base_amount == 0:
            return FeedQuote.none()

        leg = self.dex.best(Query(base, token_out, base_amount, self.config.connector))
        if leg.amount_out == 0:
            logger.debug("feed_bridge_empty", token_out=token_out, side="output")
            return FeedQuote.none()

        return FeedQuote(
            final_quote=leg.amount_out,
            bridge_leg_amount=base_amount,
            bridge_source_kind=leg.kind,
            bridge_leg=leg,
            bridge_from_input=False,
        )


__all__ = ["OracleFeedResolver", "UsdPrices"]

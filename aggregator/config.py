"""Chain configuration injected into every aggregator component.

Venue salts, fee tiers, the feed table and freshness windows all live here
instead of in code, so the same logic runs against mainnet collaborators
or synthetic ones in tests.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from aggregator import constants as c
from aggregator.models.feeds import Denomination, FeedSpec
from aggregator.models.types import normalize_address

# Concentrated-liquidity fee tiers in hundredths of a basis point
FEE_TIER_LOWEST = 100  # 0.01%
FEE_TIER_LOW = 500  # 0.05%
FEE_TIER_MEDIUM = 3000  # 0.30%
FEE_TIER_HIGH = 10000  # 1.00%

DEFAULT_FEE_TIERS = (FEE_TIER_LOWEST, FEE_TIER_LOW, FEE_TIER_MEDIUM, FEE_TIER_HIGH)

TICK_SPACING = {
    FEE_TIER_LOWEST: 1,
    FEE_TIER_LOW: 10,
    FEE_TIER_MEDIUM: 60,
    FEE_TIER_HIGH: 200,
}


@dataclass(frozen=True)
class ConstantProductVenue:
    """An x*y=k venue, identified by its factory and pair init code.

    Attributes:
        name: Venue name used in quotes (e.g. "uniswap_v2")
        factory: Factory address used as CREATE2 deployer
        init_code_hash: keccak256 of the pair creation code
        fee_bps: Swap fee in basis points (30 = 0.3%)
    """

    name: str
    factory: str
    init_code_hash: str
    fee_bps: int = c.CONSTANT_PRODUCT_FEE_BPS

    @property
    def fee_multiplier(self) -> int:
        """Fee multiplier for AMM math (10000 - fee_bps), 9970 for 0.3%."""
        return c.BPS - self.fee_bps


@dataclass(frozen=True)
class ConcentratedVenue:
    """A concentrated-liquidity venue with a fixed set of fee tiers."""

    name: str
    factory: str
    init_code_hash: str
    fee_tiers: tuple[int, ...] = DEFAULT_FEE_TIERS


def pair_key(token_a: str, token_b: str) -> frozenset[str]:
    """Unordered, normalized key for a token pair."""
    return frozenset((normalize_address(token_a), normalize_address(token_b)))


@dataclass(frozen=True)
class ChainConfig:
    """Per-chain configuration.

    Attributes:
        base_asset: Wrapped native currency (WETH on mainnet)
        btc_asset: BTC-pegged token priced 1:1 against BTC when it has no USD feed
        stablecoins: Tokens priced at exactly 1 USD without any feed lookup
        constant_product_venues: x*y=k venues, in candidate enumeration order
        concentrated_venue: Concentrated-liquidity venue, or None to disable
        router_name: Venue name of the aggregator router, or None to disable
        connector_token: Bridge token for two-hop candidates (defaults to base_asset)
        btc_reference: Key under which the BTC/USD feed is registered
        preferred_fee_tiers: Pairs that only ever need one fee tier checked
        feeds: Feed table keyed by (token, denomination)
        known_decimals: Decimals shortcuts that skip the decimals lookup
    """

    base_asset: str
    btc_asset: str | None = None
    stablecoins: frozenset[str] = frozenset()
    constant_product_venues: tuple[ConstantProductVenue, ...] = ()
    concentrated_venue: ConcentratedVenue | None = None
    router_name: str | None = "router"
    connector_token: str | None = None
    btc_reference: str = c.DENOMINATION_BTC
    preferred_fee_tiers: Mapping[frozenset[str], int] = field(default_factory=dict)
    feeds: Mapping[tuple[str, Denomination], FeedSpec] = field(default_factory=dict)
    known_decimals: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Frozen: normalize through object.__setattr__
        object.__setattr__(self, "base_asset", normalize_address(self.base_asset))
        if self.btc_asset is not None:
            object.__setattr__(self, "btc_asset", normalize_address(self.btc_asset))
        object.__setattr__(
            self, "stablecoins", frozenset(normalize_address(t) for t in self.stablecoins)
        )
        connector = self.connector_token or self.base_asset
        object.__setattr__(self, "connector_token", normalize_address(connector))
        object.__setattr__(self, "btc_reference", normalize_address(self.btc_reference))
        object.__setattr__(
            self,
            "feeds",
            {
                (normalize_address(token), Denomination(denom)): spec
                for (token, denom), spec in self.feeds.items()
            },
        )
        object.__setattr__(
            self,
            "known_decimals",
            {normalize_address(t): d for t, d in self.known_decimals.items()},
        )
        object.__setattr__(
            self,
            "preferred_fee_tiers",
            {
                frozenset(normalize_address(t) for t in key): tier
                for key, tier in self.preferred_fee_tiers.items()
            },
        )

    @property
    def connector(self) -> str:
        return self.connector_token or self.base_asset

    def feed_for(self, token: str, denomination: Denomination) -> FeedSpec | None:
        return self.feeds.get((normalize_address(token), denomination))

    def has_feed(self, token: str, denomination: Denomination) -> bool:
        return self.feed_for(token, denomination) is not None

    def preferred_tier(self, token_a: str, token_b: str) -> int | None:
        return self.preferred_fee_tiers.get(pair_key(token_a, token_b))

    def is_stablecoin(self, token: str) -> bool:
        return normalize_address(token) in self.stablecoins

    def is_base_asset(self, token: str) -> bool:
        return normalize_address(token) == self.base_asset

    def is_btc_asset(self, token: str) -> bool:
        return self.btc_asset is not None and normalize_address(token) == self.btc_asset

    def decimals_shortcut(self, token: str) -> int | None:
        return self.known_decimals.get(normalize_address(token))


def feed_table(
    entries: Iterable[tuple[str, Denomination, str, int]],
) -> dict[tuple[str, Denomination], FeedSpec]:
    """Build a feed table from (token, denomination, handle, staleness) rows."""
    return {
        (normalize_address(token), denom): FeedSpec(handle=handle, staleness_seconds=window)
        for token, denom, handle, window in entries
    }


LINK = "0x514910771af9ca656af840dff83e8264ecf986ca"
UNI = "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984"
AAVE = "0x7fc66500c84a76ad7e9c93437bfc5ac33e2ddae9"


def mainnet_config() -> ChainConfig:
    """Ethereum mainnet defaults (Uniswap V2, SushiSwap, Uniswap V3, Chainlink)."""
    feeds = feed_table(
        [
            (c.WETH, Denomination.USD, c.DENOMINATION_ETH, c.FAST_FEED_STALENESS),
            (c.DENOMINATION_BTC, Denomination.USD, c.DENOMINATION_BTC, c.FAST_FEED_STALENESS),
            (c.WBTC, Denomination.USD, c.WBTC, c.SLOW_FEED_STALENESS),
            (LINK, Denomination.USD, LINK, c.FAST_FEED_STALENESS),
            (LINK, Denomination.ETH, LINK, c.SLOW_FEED_STALENESS),
            (UNI, Denomination.ETH, UNI, c.SLOW_FEED_STALENESS),
            (AAVE, Denomination.USD, AAVE, c.FAST_FEED_STALENESS),
            (AAVE, Denomination.ETH, AAVE, c.SLOW_FEED_STALENESS),
        ]
    )
    return ChainConfig(
        base_asset=c.WETH,
        btc_asset=c.WBTC,
        stablecoins=frozenset({c.USDC, c.USDT, c.DAI}),
        constant_product_venues=(
            ConstantProductVenue(
                name="uniswap_v2",
                factory=c.UNISWAP_V2_FACTORY,
                init_code_hash=c.UNISWAP_V2_INIT_CODE_HASH,
            ),
            ConstantProductVenue(
                name="sushiswap",
                factory=c.SUSHISWAP_FACTORY,
                init_code_hash=c.SUSHISWAP_INIT_CODE_HASH,
            ),
        ),
        concentrated_venue=ConcentratedVenue(
            name="uniswap_v3",
            factory=c.UNISWAP_V3_FACTORY,
            init_code_hash=c.UNISWAP_V3_INIT_CODE_HASH,
        ),
        router_name="router",
        preferred_fee_tiers={
            pair_key(c.USDC, c.USDT): FEE_TIER_LOWEST,
            pair_key(c.USDC, c.DAI): FEE_TIER_LOWEST,
            pair_key(c.WETH, c.USDC): FEE_TIER_LOW,
            pair_key(c.WETH, c.USDT): FEE_TIER_LOW,
            pair_key(c.WBTC, c.WETH): FEE_TIER_LOW,
        },
        feeds=feeds,
        known_decimals=c.WELL_KNOWN_DECIMALS,
    )


__all__ = [
    "ChainConfig",
    "ConstantProductVenue",
    "ConcentratedVenue",
    "DEFAULT_FEE_TIERS",
    "FEE_TIER_LOWEST",
    "FEE_TIER_LOW",
    "FEE_TIER_MEDIUM",
    "FEE_TIER_HIGH",
    "TICK_SPACING",
    "feed_table",
    "mainnet_config",
    "pair_key",
]

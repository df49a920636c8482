"""Protocol constants for the quote aggregator.

Centralizes well-known mainnet addresses and numeric parameters. Chain
specific values are only defaults: components read them through
`aggregator.config.ChainConfig`.
"""

from aggregator.models.types import is_valid_address


def _validate_token_address(name: str, address: str) -> str:
    """Validate and return a lowercase address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address.lower()


# Basis point denominator for haircuts, tolerances and fees
BPS = 10_000

# Administrative bounds (values must stay strictly below the maximum)
MAX_SLIPPAGE_BPS = 1_000
MAX_TOLERANCE_BPS = 10_000
DEFAULT_SLIPPAGE_BPS = 100
DEFAULT_TOLERANCE_BPS = 300

# Well-known token addresses on mainnet (lowercase for consistency)
WETH = _validate_token_address("WETH", "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2")
WBTC = _validate_token_address("WBTC", "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599")
USDC = _validate_token_address("USDC", "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48")
USDT = _validate_token_address("USDT", "0xdac17f958d2ee523a2206206994597c13d831ec7")
DAI = _validate_token_address("DAI", "0x6b175474e89094c44da98b954eedeac495271d0f")

# Decimals shortcuts for tokens we never need to ask about
WELL_KNOWN_DECIMALS = {
    WETH: 18,
    WBTC: 8,
    USDC: 6,
    USDT: 6,
    DAI: 18,
}

# Constant-product venues: (factory, pair init code hash)
UNISWAP_V2_FACTORY = _validate_token_address(
    "UNISWAP_V2_FACTORY", "0x5c69bee701ef814a2b6a3edd4b1652cb9cc5aa6f"
)
UNISWAP_V2_INIT_CODE_HASH = "0x96e8ac4277198ff8b6f785478aa9a39f403cb768dd02cbee326c3e7da348845f"
SUSHISWAP_FACTORY = _validate_token_address(
    "SUSHISWAP_FACTORY", "0xc0aee478e3658e2610c5f7a4a2e1777ce9e4f2ac"
)
SUSHISWAP_INIT_CODE_HASH = "0xe18a34eb0e04b04f7a0ac29a6e80748dca96319b42c520b0a05f9bc8ee5e10e2"

# Fee charged by the constant-product venues (30 bps = 997/1000 kept)
CONSTANT_PRODUCT_FEE_BPS = 30

# Concentrated-liquidity venue
UNISWAP_V3_FACTORY = _validate_token_address(
    "UNISWAP_V3_FACTORY", "0x1f98431c8ad98523631ae4a59f267346ea31f984"
)
UNISWAP_V3_INIT_CODE_HASH = "0xe34f199b19b2b4f47f68442619d555527d244f78a3297ea89325f843f87b8b54"
QUOTER_V2_ADDRESS = "0x61ffe014ba17989e743c5f6cb21bf9697530b21e"

# Chainlink Feed Registry and its denomination pseudo-addresses
FEED_REGISTRY_ADDRESS = "0x47fb2585d2c56fe188d0e6ec628a38b74fceeedf"
DENOMINATION_USD = "0x0000000000000000000000000000000000000348"
DENOMINATION_ETH = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"
DENOMINATION_BTC = "0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"

# Freshness windows (seconds). ETH/USD and BTC/USD heartbeat hourly,
# most token feeds update daily.
FAST_FEED_STALENESS = 3_600
SLOW_FEED_STALENESS = 86_400

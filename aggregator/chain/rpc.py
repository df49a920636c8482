"""RPC-backed collaborators (requires the `rpc` extra: pip install quote-aggregator[rpc]).

Each class makes eth_call requests through web3 and translates every
exception into a failed CallResult at this boundary, so nothing above
the collaborator interfaces ever sees a transport error.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import structlog

from aggregator import constants as c
from aggregator.models.feeds import Denomination, FeedReading
from aggregator.result import CallFailure, CallResult

from .interfaces import RouterRate, Slot0

logger = structlog.get_logger()

T = TypeVar("T")

# Minimal ABIs, just the functions we need
PAIR_ABI = [
    {
        "name": "getReserves",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "reserve0", "type": "uint112"},
            {"name": "reserve1", "type": "uint112"},
            {"name": "blockTimestampLast", "type": "uint32"},
        ],
    },
]

POOL_ABI = [
    {
        "name": "liquidity",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint128"}],
    },
    {
        "name": "slot0",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "observationIndex", "type": "uint16"},
            {"name": "observationCardinality", "type": "uint16"},
            {"name": "observationCardinalityNext", "type": "uint16"},
            {"name": "feeProtocol", "type": "uint8"},
            {"name": "unlocked", "type": "bool"},
        ],
    },
    {
        "name": "tickBitmap",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "wordPosition", "type": "int16"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "fee",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint24"}],
    },
]

ERC20_ABI = [
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
]

FEED_REGISTRY_ABI = [
    {
        "name": "latestRoundData",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "base", "type": "address"},
            {"name": "quote", "type": "address"},
        ],
        "outputs": [
            {"name": "roundId", "type": "uint80"},
            {"name": "answer", "type": "int256"},
            {"name": "startedAt", "type": "uint256"},
            {"name": "updatedAt", "type": "uint256"},
            {"name": "answeredInRound", "type": "uint80"},
        ],
    },
]

ROUTER_ABI = [
    {
        "name": "getBestRate",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "tokenIn", "type": "address"},
            {"name": "tokenOut", "type": "address"},
            {"name": "amountIn", "type": "uint256"},
        ],
        "outputs": [
            {"name": "pool", "type": "address"},
            {"name": "amountOut", "type": "uint256"},
        ],
    },
]

QUOTER_V2_ABI = [
    {
        "name": "quoteExactInputSingle",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {
                "name": "params",
                "type": "tuple",
                "components": [
                    {"name": "tokenIn", "type": "address"},
                    {"name": "tokenOut", "type": "address"},
                    {"name": "amountIn", "type": "uint256"},
                    {"name": "fee", "type": "uint24"},
                    {"name": "sqrtPriceLimitX96", "type": "uint160"},
                ],
            }
        ],
        "outputs": [
            {"name": "amountOut", "type": "uint256"},
            {"name": "sqrtPriceX96After", "type": "uint160"},
            {"name": "initializedTicksCrossed", "type": "uint32"},
            {"name": "gasEstimate", "type": "uint256"},
        ],
    },
]

DENOMINATION_ADDRESSES = {
    Denomination.USD: c.DENOMINATION_USD,
    Denomination.ETH: c.DENOMINATION_ETH,
    Denomination.BTC: c.DENOMINATION_BTC,
}

_ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def classify_error(error: Exception) -> CallFailure:
    """Map a web3/transport exception to a failure reason."""
    from web3.exceptions import BadFunctionCallOutput, ContractLogicError

    if isinstance(error, ContractLogicError):
        return CallFailure.REVERTED
    if isinstance(error, BadFunctionCallOutput):
        return CallFailure.INVALID
    if isinstance(error, TimeoutError) or "timeout" in type(error).__name__.lower():
        return CallFailure.TIMEOUT
    return CallFailure.ERROR


class Web3Client:
    """Shared web3 connection and contract cache."""

    def __init__(self, rpc_url: str, timeout: float = 10.0):
        """Initialize the client.

        Args:
            rpc_url: HTTP RPC URL (e.g., "https://eth.llamarpc.com")
            timeout: Per-request timeout in seconds
        """
        try:
            from web3 import Web3
        except ImportError as e:
            raise ImportError(
                f"web3 package required for {type(self).__name__}. Install with: pip install web3"
            ) from e

        self.w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self._contracts: dict[tuple[str, int], Any] = {}

    def checksum(self, address: str) -> str:
        from web3 import Web3

        return Web3.to_checksum_address(address)

    def contract(self, address: str, abi: list[dict[str, Any]]) -> Any:
        key = (address.lower(), id(abi))
        if key not in self._contracts:
            self._contracts[key] = self.w3.eth.contract(address=self.checksum(address), abi=abi)
        return self._contracts[key]

    def call(self, event: str, fn: Callable[[], T], **context: Any) -> CallResult[T]:
        """Run `fn`, turning any exception into a failed CallResult."""
        try:
            return CallResult.ok(fn())
        except Exception as e:
            failure = classify_error(e)
            logger.warning(event, failure=failure.value, error=str(e), **context)
            return CallResult.fail(failure, str(e))


class Web3Chain(Web3Client):
    """ChainReader and PoolStateReader over JSON-RPC."""

    def has_code(self, address: str) -> CallResult[bool]:
        return self.call(
            "rpc_get_code_failed",
            lambda: len(self.w3.eth.get_code(self.checksum(address))) > 0,
            address=address,
        )

    def get_reserves(self, pair: str) -> CallResult[tuple[int, int]]:
        def fetch() -> tuple[int, int]:
            reserve0, reserve1, _ = self.contract(pair, PAIR_ABI).functions.getReserves().call()
            return int(reserve0), int(reserve1)

        return self.call("rpc_get_reserves_failed", fetch, pair=pair)

    def get_liquidity(self, pool: str) -> CallResult[int]:
        return self.call(
            "rpc_liquidity_failed",
            lambda: int(self.contract(pool, POOL_ABI).functions.liquidity().call()),
            pool=pool,
        )

    def balance_of(self, token: str, holder: str) -> CallResult[int]:
        return self.call(
            "rpc_balance_of_failed",
            lambda: int(
                self.contract(token, ERC20_ABI).functions.balanceOf(self.checksum(holder)).call()
            ),
            token=token,
            holder=holder,
        )

    def decimals(self, token: str) -> CallResult[int]:
        return self.call(
            "rpc_decimals_failed",
            lambda: int(self.contract(token, ERC20_ABI).functions.decimals().call()),
            token=token,
        )

    def slot0(self, pool: str) -> CallResult[Slot0]:
        def fetch() -> Slot0:
            result = self.contract(pool, POOL_ABI).functions.slot0().call()
            return Slot0(sqrt_price_x96=int(result[0]), tick=int(result[1]))

        return self.call("rpc_slot0_failed", fetch, pool=pool)

    def next_initialized_tick(
        self,
        pool: str,
        tick: int,
        tick_spacing: int,
        zero_for_one: bool,
    ) -> CallResult[int]:
        """Search one bitmap word, like TickBitmap.nextInitializedTickWithinOneWord.

        When the word holds no initialized tick the word boundary is
        returned, which is never further than the real next tick.
        """
        functions = self.contract(pool, POOL_ABI).functions
        compressed = tick // tick_spacing

        def fetch() -> int:
            if zero_for_one:
                word_pos, bit_pos = compressed >> 8, compressed % 256
                mask = (1 << bit_pos) - 1 + (1 << bit_pos)
                masked = int(functions.tickBitmap(word_pos).call()) & mask
                if masked:
                    return (compressed - (bit_pos - (masked.bit_length() - 1))) * tick_spacing
                return (compressed - bit_pos) * tick_spacing

            nxt = compressed + 1
            word_pos, bit_pos = nxt >> 8, nxt % 256
            mask = ~((1 << bit_pos) - 1)
            masked = int(functions.tickBitmap(word_pos).call()) & mask
            if masked:
                lowest = (masked & -masked).bit_length() - 1
                return (nxt + (lowest - bit_pos)) * tick_spacing
            return (nxt + (255 - bit_pos)) * tick_spacing

        return self.call("rpc_tick_bitmap_failed", fetch, pool=pool, tick=tick)


class Web3FeedRegistry(Web3Client):
    """FeedLookup over the Chainlink Feed Registry."""

    def __init__(
        self,
        rpc_url: str,
        registry_address: str = c.FEED_REGISTRY_ADDRESS,
        timeout: float = 10.0,
    ):
        super().__init__(rpc_url, timeout)
        self.registry = self.contract(registry_address, FEED_REGISTRY_ABI)

    def latest(self, handle: str, denomination: Denomination) -> CallResult[FeedReading]:
        quote = DENOMINATION_ADDRESSES[denomination]

        def fetch() -> FeedReading:
            _, answer, _, updated_at, _ = self.registry.functions.latestRoundData(
                self.checksum(handle), self.checksum(quote)
            ).call()
            return FeedReading(value=int(answer), updated_at=int(updated_at))

        return self.call(
            "rpc_feed_failed", fetch, handle=handle, denomination=denomination.value
        )


class Web3RouterQuoter(Web3Client):
    """RouterQuoter over a `getBestRate(tokenIn, tokenOut, amountIn)` router."""

    def __init__(self, rpc_url: str, router_address: str, timeout: float = 10.0):
        super().__init__(rpc_url, timeout)
        self.router = self.contract(router_address, ROUTER_ABI)

    def best_rate(self, token_in: str, token_out: str, amount_in: int) -> CallResult[RouterRate]:
        def fetch() -> RouterRate:
            pool, amount_out = self.router.functions.getBestRate(
                self.checksum(token_in), self.checksum(token_out), amount_in
            ).call()
            pool = pool.lower()
            return RouterRate(
                pool=None if pool == _ZERO_ADDRESS else pool,
                amount_out=int(amount_out),
            )

        return self.call(
            "rpc_router_rate_failed",
            fetch,
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
        )

    def pool_fee(self, pool: str) -> CallResult[int]:
        return self.call(
            "rpc_pool_fee_failed",
            lambda: int(self.contract(pool, POOL_ABI).functions.fee().call()),
            pool=pool,
        )


class Web3CrossTickQuoter(Web3Client):
    """CrossTickQuoter calling QuoterV2 via eth_call."""

    def __init__(
        self,
        rpc_url: str,
        quoter_address: str = c.QUOTER_V2_ADDRESS,
        timeout: float = 10.0,
    ):
        super().__init__(rpc_url, timeout)
        self.quoter = self.contract(quoter_address, QUOTER_V2_ABI)

    def quote_exact_input(
        self,
        token_in: str,
        token_out: str,
        fee: int,
        amount_in: int,
    ) -> CallResult[int]:
        def fetch() -> int:
            result = self.quoter.functions.quoteExactInputSingle(
                (
                    self.checksum(token_in),
                    self.checksum(token_out),
                    amount_in,
                    fee,
                    0,  # sqrtPriceLimitX96 = 0 means no limit
                )
            ).call()
            # (amountOut, sqrtPriceX96After, initializedTicksCrossed, gasEstimate)
            return int(result[0])

        return self.call(
            "v3_quote_exact_input_failed",
            fetch,
            token_in=token_in,
            token_out=token_out,
            fee=fee,
            amount_in=amount_in,
        )


__all__ = [
    "Web3Chain",
    "Web3Client",
    "Web3CrossTickQuoter",
    "Web3FeedRegistry",
    "Web3RouterQuoter",
    "classify_error",
]

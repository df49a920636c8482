"""Deterministic pool address derivation (CREATE2).

No network access: a pool's address follows from its factory, the
sorted token pair and the pair contract's init code hash.
"""

from __future__ import annotations

from eth_abi import encode  # type: ignore[attr-defined]
from eth_utils import keccak

from aggregator.config import ConcentratedVenue, ConstantProductVenue
from aggregator.models.types import is_valid_address, sort_tokens


def _address_bytes(address: str) -> bytes:
    if not is_valid_address(address):
        raise ValueError(f"Invalid address: {address}")
    return bytes.fromhex(address[2:])


def create2_address(deployer: str, salt: bytes, init_code_hash: str) -> str:
    """Address of a contract deployed with CREATE2.

    keccak256(0xff ++ deployer ++ salt ++ init_code_hash)[12:]
    """
    if len(salt) != 32:
        raise ValueError(f"CREATE2 salt must be 32 bytes, got {len(salt)}")
    code_hash = bytes.fromhex(init_code_hash.removeprefix("0x"))
    digest = keccak(b"\xff" + _address_bytes(deployer) + salt + code_hash)
    return "0x" + digest[12:].hex()


def constant_product_pair_address(venue: ConstantProductVenue, token_a: str, token_b: str) -> str:
    """Pair address for an x*y=k venue; salt is keccak(token0 ++ token1)."""
    token0, token1 = sort_tokens(token_a, token_b)
    salt = keccak(_address_bytes(token0) + _address_bytes(token1))
    return create2_address(venue.factory, salt, venue.init_code_hash)


def concentrated_pool_address(
    venue: ConcentratedVenue, token_a: str, token_b: str, fee: int
) -> str:
    """Pool address for a concentrated-liquidity venue and fee tier.

    Salt is keccak(abi.encode(token0, token1, fee)).
    """
    token0, token1 = sort_tokens(token_a, token_b)
    salt = keccak(
        encode(
            ["address", "address", "uint24"],
            [_address_bytes(token0), _address_bytes(token1), fee],
        )
    )
    return create2_address(venue.factory, salt, venue.init_code_hash)


__all__ = [
    "create2_address",
    "constant_product_pair_address",
    "concentrated_pool_address",
]

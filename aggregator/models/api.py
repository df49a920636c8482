"""Pydantic models for the HTTP API.

Amounts travel as decimal strings, addresses as 0x-prefixed hex, and
field names are camelCase on the wire.
"""

from pydantic import BaseModel, Field

from aggregator.models.quote import Quote, SourceKind
from aggregator.models.types import Address, Uint256


class QuoteRequest(BaseModel):
    """A pair and an exact input amount."""

    token_in: Address = Field(alias="tokenIn", description="Token being sold")
    token_out: Address = Field(alias="tokenOut", description="Token being bought")
    amount_in: Uint256 = Field(alias="amountIn", description="Input amount in smallest units")

    model_config = {"populate_by_name": True}


class QuoteResponse(BaseModel):
    """Best quote found for a request."""

    kind: SourceKind
    venue: str
    amount_out: Uint256 = Field(alias="amountOut")
    pools: list[str | None] = Field(description="Pool addresses in hop order")
    fees: list[int] = Field(description="Per-pool fee in basis points")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteResponse":
        return cls(
            kind=quote.kind,
            venue=quote.venue,
            amount_out=str(quote.amount_out),
            pools=list(quote.pools),
            fees=list(quote.fees),
        )


class SupportResponse(BaseModel):
    supported: bool


class SettingUpdate(BaseModel):
    """New value for an administrative setting."""

    bps: int = Field(ge=0, description="New value in basis points")


class SettingsResponse(BaseModel):
    """Current administrative settings."""

    operator: Address
    slippage_bps: int = Field(alias="slippageBps")
    max_slippage_bps: int = Field(alias="maxSlippageBps")
    tolerance_bps: int = Field(alias="toleranceBps")
    max_tolerance_bps: int = Field(alias="maxToleranceBps")

    model_config = {"populate_by_name": True}


__all__ = [
    "QuoteRequest",
    "QuoteResponse",
    "SettingUpdate",
    "SettingsResponse",
    "SupportResponse",
]

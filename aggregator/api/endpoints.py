"""API endpoints for the quote aggregator."""

import asyncio
from collections.abc import Callable

import structlog
from fastapi import APIRouter, Depends, Header

from aggregator.engine import get_default_engine
from aggregator.models.api import (
    QuoteRequest,
    QuoteResponse,
    SettingsResponse,
    SettingUpdate,
    SupportResponse,
)
from aggregator.models.quote import Quote
from aggregator.slippage import SwapFinder

logger = structlog.get_logger()

router = APIRouter()


def get_engine() -> SwapFinder:
    """Dependency provider for the engine instance.

    Override this in tests to inject an engine built on in-memory collaborators:
        app.dependency_overrides[get_engine] = lambda: engine

    Returns:
        The engine (or lenient policy) serving quotes.
    """
    return get_default_engine()


async def _run_quote(
    operation: Callable[[str, str, int], Quote], request: QuoteRequest
) -> QuoteResponse:
    """Run a synchronous quoting operation off the event loop."""
    loop = asyncio.get_running_loop()
    quote = await loop.run_in_executor(
        None, operation, request.token_in, request.token_out, int(request.amount_in)
    )
    logger.info(
        "quote_served",
        token_in=request.token_in,
        token_out=request.token_out,
        amount_in=request.amount_in,
        venue=quote.venue,
        amount_out=quote.amount_out,
    )
    return QuoteResponse.from_quote(quote)


@router.post("/quotes/supported")
async def pair_supported(
    request: QuoteRequest,
    engine: SwapFinder = Depends(get_engine),
) -> SupportResponse:
    """Whether any source or feed can quote the pair."""
    loop = asyncio.get_running_loop()
    supported = await loop.run_in_executor(
        None,
        engine.is_pair_supported,
        request.token_in,
        request.token_out,
        int(request.amount_in),
    )
    return SupportResponse(supported=supported)


@router.post("/quotes/optimal")
async def optimal_quote(
    request: QuoteRequest,
    engine: SwapFinder = Depends(get_engine),
) -> QuoteResponse:
    """Oracle estimate when available, else best dex quote.

    Error Handling:
        - Stale feed: 503
    """
    return await _run_quote(engine.find_optimal_swap, request)


@router.post("/quotes/executable")
async def executable_quote(
    request: QuoteRequest,
    engine: SwapFinder = Depends(get_engine),
) -> QuoteResponse:
    """Best dex quote validated against the oracle.

    Error Handling:
        - Stale feed: 503
        - Dex quote outside the oracle tolerance band: 409
    """
    return await _run_quote(engine.find_executable_swap, request)


@router.post("/quotes/unsafe")
async def unsafe_quote(
    request: QuoteRequest,
    engine: SwapFinder = Depends(get_engine),
) -> QuoteResponse:
    """Best dex quote without oracle validation."""
    return await _run_quote(engine.unsafe_find_executable_swap, request)


def _settings_response(engine: SwapFinder) -> SettingsResponse:
    settings = engine.settings
    return SettingsResponse(
        operator=settings.operator,
        slippage_bps=settings.slippage_bps,
        max_slippage_bps=settings.max_slippage_bps,
        tolerance_bps=settings.tolerance_bps,
        max_tolerance_bps=settings.max_tolerance_bps,
    )


@router.get("/admin/settings")
async def read_settings(engine: SwapFinder = Depends(get_engine)) -> SettingsResponse:
    return _settings_response(engine)


@router.post("/admin/slippage")
async def update_slippage(
    update: SettingUpdate,
    x_operator: str = Header(),
    engine: SwapFinder = Depends(get_engine),
) -> SettingsResponse:
    """Change the lenient haircut (operator only)."""
    engine.settings.set_slippage(x_operator, update.bps)
    return _settings_response(engine)


@router.post("/admin/tolerance")
async def update_tolerance(
    update: SettingUpdate,
    x_operator: str = Header(),
    engine: SwapFinder = Depends(get_engine),
) -> SettingsResponse:
    """Change the oracle validation tolerance (operator only)."""
    engine.settings.set_tolerance(x_operator, update.bps)
    return _settings_response(engine)

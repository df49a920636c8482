"""FastAPI application for the quote aggregator."""

import os

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from aggregator import __version__
from aggregator.api.endpoints import router
from aggregator.errors import (
    AggregatorError,
    SettingOutOfRangeError,
    SlippageExceededError,
    StaleFeedError,
    UnauthorizedError,
)

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("AGGREGATOR_HOST", "0.0.0.0")
PORT = int(os.environ.get("AGGREGATOR_PORT", "8000"))
DEBUG = os.environ.get("AGGREGATOR_DEBUG", "false").lower() in ("true", "1", "yes")

ERROR_STATUS = {
    StaleFeedError: 503,
    SlippageExceededError: 409,
    UnauthorizedError: 403,
    SettingOutOfRangeError: 422,
}

app = FastAPI(
    title="Quote Aggregator",
    description="Best-rate discovery across AMM venues with oracle cross-validation",
    version=__version__,
)

app.include_router(router)


@app.exception_handler(AggregatorError)
async def aggregator_error(request: Request, exc: AggregatorError) -> JSONResponse:
    """Hard failures keep their own status codes."""
    status = ERROR_STATUS.get(type(exc), 500)
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


@app.exception_handler(ValueError)
async def invalid_input(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": "ValueError", "detail": str(exc)})


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Run the aggregator API server.

    Configuration via environment variables:
    - AGGREGATOR_HOST: Host to bind to (default: 0.0.0.0)
    - AGGREGATOR_PORT: Port to bind to (default: 8000)
    - AGGREGATOR_DEBUG: Enable debug/reload mode (default: false)
    """
    uvicorn.run(
        "aggregator.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()

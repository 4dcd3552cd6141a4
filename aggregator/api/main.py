"""FastAPI application for the route aggregator.

Note: Rate limiting and authentication are not implemented at the
application level. They belong to the infrastructure layer (reverse proxy /
load balancer).
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from aggregator import __version__
from aggregator.aggregator import get_default_aggregator
from aggregator.api.endpoints import router
from aggregator.errors import AggregatorError, ReferralNotFound
from aggregator.logging_config import configure_logging

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("AGGREGATOR_HOST", "0.0.0.0")
PORT = int(os.environ.get("AGGREGATOR_PORT", "8000"))
DEBUG = os.environ.get("AGGREGATOR_DEBUG", "false").lower() in ("true", "1", "yes")
LOG_LEVEL = os.environ.get("AGGREGATOR_LOG_LEVEL", "DEBUG" if DEBUG else "INFO")

# Maximum request body size (1 MB)
MAX_REQUEST_SIZE = 1024 * 1024


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logging(LOG_LEVEL)
    yield


app = FastAPI(
    title="Route Aggregator",
    description="Compact route decoding and batch execution across DEX venues",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


@app.exception_handler(AggregatorError)
async def aggregator_error_handler(_: Request, exc: AggregatorError) -> JSONResponse:
    """Report aggregator errors as 4xx with their stable code."""
    status_code = 404 if isinstance(exc, ReferralNotFound) else 400
    return JSONResponse(status_code=status_code, content={"error": exc.code, "detail": str(exc)})


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "venues_configured": get_default_aggregator() is not None}


def run() -> None:
    """Run the aggregator API server.

    Configuration via environment variables:
    - AGGREGATOR_HOST: Host to bind to (default: 0.0.0.0)
    - AGGREGATOR_PORT: Port to bind to (default: 8000)
    - AGGREGATOR_DEBUG: Enable debug/reload mode (default: false)
    - AGGREGATOR_LOG_LEVEL: Log level (default: INFO, DEBUG in debug mode)
    """
    uvicorn.run(
        "aggregator.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()

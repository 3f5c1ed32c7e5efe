"""
Adola Engine Main Application Entry Point
FastAPI service exposing the win/loss engine and its crash and mines rounds.
"""

import sys
from pathlib import Path

# Add parent directory to path so imports work when running directly
if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
import orjson as json
from starlette.middleware.base import BaseHTTPMiddleware
import uvicorn

from adola.core.logger import init_logging, get_logger
from adola.config import settings
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from adola.core.exceptions import GameError
from adola.core.tables import get_tables
from adola.routers import api

# Initialize logging first
init_logging(
    level=settings.logging.level,
    log_to_file=settings.logging.log_to_file,
    formatter=settings.logging.formatter,
    log_file_path=settings.logging.get_log_path(),
)
logger = get_logger("main")


# ==================== Security Headers Middleware ====================


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        return response


# ==================== Exception Handlers ====================


def json_error(status_code: int, payload: dict) -> Response:
    return Response(content=json.dumps(payload), status_code=status_code, media_type="application/json")


async def game_error_handler(request: Request, exc: GameError):
    logger.warning(
        f"Game action rejected: {exc.message}",
        extra={"path": request.url.path, "status": exc.status_code},
    )
    return json_error(exc.status_code, {"detail": exc.message})


async def value_error_handler(request: Request, exc: ValueError):
    return json_error(400, {"detail": str(exc)})


async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions gracefully."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return json_error(
        500,
        {
            "error": "Internal server error",
            "detail": str(exc) if settings.server.debug else None,
        },
    )


# ==================== Application Setup ====================


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.server.name,
        docs_url="/docs" if settings.server.debug else None,
        redoc_url=None,
    )

    app.state.limiter = api.limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(GameError, game_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.add_middleware(SecurityHeadersMiddleware)

    # CORS middleware (for development)
    if settings.server.debug:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api.router, prefix="/api")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # Load the payout tables now rather than on the first play
    get_tables()

    return app


app = create_app()

logger.info(f"Application '{settings.server.name}' initialized")
logger.info(f"Debug mode: {settings.server.debug}")
if settings.engine.seed is not None:
    logger.warning(f"Engine running with fixed seed {settings.engine.seed}; outcomes are reproducible")


# ==================== Main Entry Point ====================

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Adola win/loss engine server")
    parser.add_argument("--host", default=settings.server.host)
    parser.add_argument("--port", type=int, default=settings.server.port)
    args = parser.parse_args()

    logger.info(f"Starting server on {args.host}:{args.port}")
    uvicorn.run(
        "adola.main:app",
        host=args.host,
        port=args.port,
        reload=settings.server.debug,
    )

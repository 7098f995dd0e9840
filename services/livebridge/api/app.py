"""
FastAPI application factory for the livebridge server.

Uses lifespan handler for startup/shutdown with async resource management.
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from livebridge.auth.sources import init_sources
from livebridge.config import settings
from livebridge.errors import (
    ProviderProfileError,
    ProviderTokenError,
    StateError,
    TransportError,
    UserAbortedError,
)
from livebridge.logging_config import configure_logging, get_logger
from livebridge.redis.client import flow_state_redis

from .health import router as health_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan handler for startup and shutdown."""
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)
    logger.info("Starting livebridge server", version="0.1.0")

    await flow_state_redis.connect(str(settings.redis_url))

    init_sources()

    yield

    logger.info("Shutting down livebridge server")
    await flow_state_redis.close()


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StateError)
    async def state_error_handler(request: Request, exc: StateError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.exception_handler(UserAbortedError)
    async def user_aborted_handler(request: Request, exc: UserAbortedError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"detail": "Authentication aborted", "error": exc.error},
        )

    @app.exception_handler(ProviderTokenError)
    async def token_error_handler(request: Request, exc: ProviderTokenError) -> JSONResponse:
        logger.error(
            "Token exchange failed",
            error=exc.error,
            description=exc.description,
            error_codes=exc.error_codes,
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={
                "detail": "Authentication failed",
                "error": exc.error,
                "error_description": exc.description,
                "error_codes": exc.error_codes,
            },
        )

    @app.exception_handler(ProviderProfileError)
    async def profile_error_handler(request: Request, exc: ProviderProfileError) -> JSONResponse:
        logger.error("Profile fetch failed", code=exc.code, message=exc.message)
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": "Authentication failed", "error": exc.code, "message": exc.message},
        )

    @app.exception_handler(TransportError)
    async def transport_error_handler(request: Request, exc: TransportError) -> JSONResponse:
        logger.error("Identity provider unreachable", error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": "Identity provider unreachable"},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled errors."""
        logger.error("Unhandled exception", exc_info=exc, path=str(request.url.path))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="livebridge",
        description="Delegated login to the Microsoft identity platform",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):  # type: ignore[no-untyped-def]
        """Ensure every request has a request ID for logging correlation."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        structlog.contextvars.unbind_contextvars("request_id")

        return response

    _register_exception_handlers(app)

    app.include_router(health_router)

    from livebridge.api.routers.auth import router as auth_router

    app.include_router(auth_router)

    return app

from contextlib import asynccontextmanager
from typing import Callable, Optional

import structlog
from benefitflow.api.v1 import flows
from benefitflow.core.config import settings
from benefitflow.core.exceptions import (
    CsrfTokenError,
    ExternalServiceError,
    FlowStateError,
    InvariantViolationError,
    UnknownFlowError,
)
from benefitflow.core.logging_config import configure_logging
from benefitflow.infrastructure.redis_client import redis_client
from benefitflow.infrastructure.session_store import InMemorySessionBackend, SessionBackend
from benefitflow.middleware.session_middleware import SessionMiddleware
from benefitflow.middleware.trace_middleware import TraceMiddleware
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse
from statemachine.exceptions import TransitionNotAllowed

configure_logging()
logger = structlog.get_logger()

limiter = Limiter(key_func=get_remote_address)

_is_production = settings.environment == "production"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    logger.info("starting_application", version=settings.api_version, session_backend=settings.session_backend)

    if settings.session_backend == "redis":
        await redis_client.connect()

    yield

    logger.info("shutting_down_application")
    if settings.session_backend == "redis":
        await redis_client.disconnect()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: StarletteRequest, call_next: Callable) -> StarletteResponse:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if _is_production:
            response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains; preload"
        return response


async def unknown_flow_handler(request: Request, exc: UnknownFlowError):
    logger.info("unknown_flow_route", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "NOT_FOUND", "message": exc.message},
    )


async def csrf_token_handler(request: Request, exc: CsrfTokenError):
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"error": "CSRF_TOKEN_INVALID", "message": exc.message},
    )


async def transition_not_allowed_handler(request: Request, exc: TransitionNotAllowed):
    logger.warning("transition_not_allowed", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": "TRANSITION_NOT_ALLOWED", "message": str(exc)},
    )


async def external_service_handler(request: Request, exc: ExternalServiceError):
    logger.error("external_service_error", path=request.url.path, error=exc.message, details=exc.details)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "error": "EXTERNAL_SERVICE_ERROR",
            "message": "A downstream service failed. Please try again.",
        },
    )


async def flow_state_error_handler(request: Request, exc: Exception):
    """Invariant violations and undecodable state are programmer errors"""
    logger.error("flow_state_error", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "FLOW_STATE_ERROR", "message": "An unexpected error occurred"},
    )


async def general_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled_exception", error=str(exc), path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "INTERNAL_SERVER_ERROR",
            "message": "An unexpected error occurred",
        },
    )


def create_app(session_backend: Optional[SessionBackend] = None) -> FastAPI:
    """Build the application. Tests pass their own session backend."""
    if session_backend is None:
        session_backend = redis_client if settings.session_backend == "redis" else InMemorySessionBackend()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=None if _is_production else f"{settings.api_v1_prefix}/docs",
        redoc_url=None if _is_production else f"{settings.api_v1_prefix}/redoc",
        openapi_url=None if _is_production else f"{settings.api_v1_prefix}/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Trace-Id"],
        expose_headers=["Content-Type", "X-Trace-Id"],
        max_age=600,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(SessionMiddleware, backend=session_backend)
    app.add_middleware(TraceMiddleware)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_exception_handler(UnknownFlowError, unknown_flow_handler)
    app.add_exception_handler(CsrfTokenError, csrf_token_handler)
    app.add_exception_handler(TransitionNotAllowed, transition_not_allowed_handler)
    app.add_exception_handler(ExternalServiceError, external_service_handler)
    app.add_exception_handler(InvariantViolationError, flow_state_error_handler)
    app.add_exception_handler(FlowStateError, flow_state_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    @app.get("/health")
    async def health() -> JSONResponse:
        """Health check endpoint"""
        return JSONResponse({"status": "ok", "version": settings.api_version})

    @app.get(f"{settings.api_v1_prefix}/health")
    @limiter.limit(f"{settings.rate_limit_requests}/minute")
    async def health_v1(request: Request) -> JSONResponse:
        """API v1 health check with rate limiting"""
        redis_status = "connected" if redis_client.redis else "disconnected"
        logger.info("healthcheck", status="ok", redis=redis_status, session_backend=settings.session_backend)
        return JSONResponse(
            {"status": "ok", "version": settings.api_version, "redis": redis_status}
        )

    app.include_router(flows.router)

    return app


app = create_app()

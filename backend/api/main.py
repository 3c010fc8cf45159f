"""
FastAPI application with assembled routers.

Initializes FastAPI app with all API routers, wires lifecycle-scoped
services, and configures the uvicorn server.

Dependencies: fastapi, backend.api.routers, backend.observability, uvicorn
System role: API entry point with router assembly and server launch
"""

from contextlib import asynccontextmanager
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.api import api_router
from backend.api.deps.dependencies import ServiceContainer, build_service_container
from backend.boundary.db import dispose_engine, init_models
from backend.configs import get_settings
from backend.observability.logger import configure_logging
from backend.observability.middleware import CorrelationMiddleware, RequestLoggingMiddleware

logger = logging.getLogger(__name__)

HTTP_ERROR_CODE_MAP = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMIT_EXCEEDED",
    503: "SERVICE_UNAVAILABLE",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Startup: logging, tables, service container.
    Shutdown: drain background jobs, close clients, dispose the engine.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Application startup: logging configured")

    await init_models()

    services: ServiceContainer | None = getattr(app.state, "services", None)
    if services is None:
        services = build_service_container(settings)
        app.state.services = services
    logger.info(
        "Application startup complete",
        extra={"environment": settings.environment, "max_concurrency": settings.worker.max_concurrency},
    )

    yield

    logger.info("Application shutdown", extra={"in_flight": services.dispatcher.in_flight})
    await services.aclose()
    await dispose_engine()


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as {error, code, details}."""
    detail = exc.detail
    if isinstance(detail, dict) and "code" in detail and "error" in detail:
        content = detail
    else:
        content = {
            "error": str(detail),
            "code": HTTP_ERROR_CODE_MAP.get(exc.status_code, "HTTP_ERROR"),
            "details": None,
        }
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed request bodies as 400 validation errors."""
    errors = [
        {"loc": ".".join(str(part) for part in err.get("loc", ())), "msg": err.get("msg")}
        for err in exc.errors()
    ]
    logger.warning("Malformed request", extra={"path": request.url.path, "errors": errors})
    return JSONResponse(
        status_code=400,
        content={"error": "Malformed request", "code": "VALIDATION_ERROR", "details": {"errors": errors}},
    )


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Args:
        services: Pre-built service container; built at startup when omitted

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Asynchronous AI photo transformation jobs with status polling",
        version="0.1.0",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    # Add observability middleware (added last = outermost)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID", "X-Job-ID", "Retry-After"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Register all routers with the versioned prefix
    app.include_router(api_router, prefix=settings.api_prefix)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "backend.api.main:app",
        host="0.0.0.0",
        port=8000,
    )

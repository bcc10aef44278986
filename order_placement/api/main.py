"""
Main FastAPI application.

Wires the order, customer, report and monitoring routers together with:
- typed error responses for placement failures
- request IDs (taken from X-Request-ID when the caller sends one)
- structured request logs
"""
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from order_placement import __version__
from order_placement.config import Settings, get_settings
from order_placement.database.connection import close_db, init_db
from order_placement.exceptions import InvalidArgumentError, OrderPlacementError
from order_placement.monitoring.logging import setup_logging

from .routes import customer_router, monitoring_router, order_router, report_router

REQUEST_ID_HEADER = "X-Request-ID"

settings = get_settings()
setup_logging(settings)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
    """Create the schema on startup and dispose of the engine on shutdown."""
    logger.info(
        "application_startup",
        version=__version__,
        isolation_level=settings.database_isolation_level,
        retry_max_attempts=settings.placement_retry_max_attempts,
    )
    await init_db()

    yield

    await close_db()
    logger.info("application_shutdown")


async def request_context_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Bind a request ID to every log line of the request and echo it back."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )
    start_time = time.perf_counter()
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        logger.info(
            "request_completed",
            status_code=status_code,
            duration_seconds=round(time.perf_counter() - start_time, 4),
        )
        structlog.contextvars.clear_contextvars()


async def order_placement_exception_handler(
    request: Request, exc: OrderPlacementError
) -> JSONResponse:
    """Render typed placement failures with their own status code."""
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict(), headers=headers)


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed requests in the same error shape as placement failures."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    failure = InvalidArgumentError(f"Invalid request: {problems}")
    return JSONResponse(status_code=failure.http_status, content=failure.to_dict())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler; details stay in the logs."""
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "internal_error",
                "message": "An unexpected error occurred. Please try again later.",
                "type": "InternalServerError",
            }
        },
    )


def create_app(app_settings: Settings) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings providing the CORS origins

    Returns:
        FastAPI: Configured application
    """
    application = FastAPI(
        title="Order Placement Service",
        description=(
            "Places e-commerce orders atomically: stock validation, order and line "
            "creation, stock deduction and totals in one transaction. Also serves "
            "read-only sales reports."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.get_allowed_origins_list(),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    application.middleware("http")(request_context_middleware)

    application.add_exception_handler(OrderPlacementError, order_placement_exception_handler)
    application.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    application.add_exception_handler(Exception, unhandled_exception_handler)

    application.include_router(order_router)
    application.include_router(customer_router)
    application.include_router(report_router)
    application.include_router(monitoring_router)

    return application


app = create_app(settings)


@app.get("/", tags=["root"])
async def root() -> dict[str, Any]:
    """Service information and entry points."""
    return {
        "service": settings.app_name,
        "version": __version__,
        "environment": settings.app_env,
        "endpoints": ["/orders", "/customers", "/reports", "/health", "/metrics"],
    }


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "order_placement.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

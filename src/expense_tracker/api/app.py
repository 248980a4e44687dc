"""FastAPI application factory."""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from expense_tracker.api.routes import (
    admin_router,
    analytics_router,
    auth_router,
    expense_router,
    health_router,
)
from expense_tracker.config import get_settings
from expense_tracker.container import get_container, reset_container
from expense_tracker.exceptions import ExpenseTrackerError, FieldError, ValidationError
from expense_tracker.logging_config import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging and open the database on startup; close it on shutdown."""
    settings = get_settings()
    configure_logging(settings)

    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    )

    container = get_container()
    _ = container.database  # Force database initialization

    logger.info("application_started")

    yield

    logger.info("application_stopping")
    reset_container()
    logger.info("application_stopped")


async def log_request_middleware(request: Request, call_next):
    """Middleware to add request context to logs."""
    request_id = str(uuid.uuid4())[:8]
    bind_context(request_id=request_id, path=request.url.path, method=request.method)

    try:
        response = await call_next(request)
        logger.debug(
            "request_completed",
            status_code=response.status_code,
        )
        return response
    finally:
        clear_context()


def _error_response(exc: ExpenseTrackerError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, **exc.to_dict()},
    )


async def exception_handler(request: Request, exc: ExpenseTrackerError) -> JSONResponse:
    """Turn domain exceptions into JSON error envelopes."""
    if exc.status_code >= 500:
        logger.error(
            "internal_error",
            error_code=exc.error_code,
            message=exc.message,
            context=exc.context,
        )
    else:
        logger.info(
            "domain_exception",
            error_code=exc.error_code,
            message=exc.message,
            context=exc.context,
        )
    return _error_response(exc)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed requests in the same envelope as domain validation."""
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        errors.append(
            FieldError(field=".".join(loc), message=err.get("msg", "Invalid value"))
        )
    return _error_response(ValidationError(errors=errors))


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Expense submission, approval and analytics",
        version=settings.app_version,
        debug=bool(settings.debug),
        lifespan=lifespan,
    )

    app.middleware("http")(log_request_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ExpenseTrackerError, exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]

    for router in (
        health_router,
        auth_router,
        expense_router,
        analytics_router,
        admin_router,
    ):
        app.include_router(router, prefix=settings.api_prefix)

    return app


# Create app instance for uvicorn
app = create_app()

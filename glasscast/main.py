import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from glasscast.errors import GlasscastError
from glasscast.settings import get_settings

from .api import cities, search, session, weather
from .schemas.error import ValidationErrorDetail
from .services.dependencies import build_container
from .utils.error_responses import (
    build_error_response,
    build_validation_error_response,
    error_response_for,
)
from .utils.request_context import get_request_id, set_request_id

settings = get_settings()

logging.basicConfig(
    level=settings.log_level_numeric,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def validate_environment() -> None:
    """Log a warning block listing optional configuration that is unset."""

    warnings = get_settings().optional_config_warnings()
    if warnings:
        logger.warning("=" * 60)
        logger.warning("Environment Configuration Warnings:")
        for warning in warnings:
            logger.warning(f"  • {warning}")
        logger.warning("=" * 60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the container on startup and release its resources on shutdown."""
    validate_environment()

    current = get_settings()
    logger.info("=" * 60)
    logger.info("Glasscast sync service - startup")
    logger.info("=" * 60)
    logger.info(f"Remote backend configured: {current.remote_configured}")
    logger.info(f"Weather provider configured: {current.weather_configured}")

    container = await build_container(current)
    app.state.container = container

    from glasscast.warmup import warmup_all

    await warmup_all(container)

    yield

    logger.info("Shutting down Glasscast sync service")
    await container.aclose()


app = FastAPI(
    title="Glasscast Sync API",
    version="0.1.0",
    description="Local facade over the Glasscast city sync and weather cache layer.",
    lifespan=lifespan,
    redirect_slashes=False,
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID to each request for tracking."""
    request_id = str(uuid.uuid4())
    set_request_id(request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(GlasscastError)
async def glasscast_exception_handler(request: Request, exc: GlasscastError):
    """Render categorized failures with their mapped status code."""
    logger.warning(
        "Request %s to %s failed with %s: %s",
        get_request_id(),
        request.url.path,
        exc.kind.value,
        exc.message,
    )

    error_response = error_response_for(exc, path=str(request.url.path))
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.model_dump(mode="json"),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors."""
    errors = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
        )
        for error in exc.errors()
    ]

    logger.warning(
        "Validation error for request %s to %s: %s errors",
        get_request_id(),
        request.url.path,
        len(errors),
    )

    error_response = build_validation_error_response(
        message="Request validation failed",
        detail=f"{len(errors)} validation error(s)",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        path=str(request.url.path),
        errors=errors,
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle all other unhandled exceptions."""
    logger.exception(
        "Unhandled exception for request %s to %s: %s",
        get_request_id(),
        request.url.path,
        type(exc).__name__,
    )

    error_response = build_error_response(
        error_type="internal_error",
        message="Internal server error",
        detail=f"An unexpected error occurred: {type(exc).__name__}",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        path=str(request.url.path),
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(mode="json"),
    )


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    """Simple health endpoint for readiness checks."""
    return {"status": "ok"}


app.include_router(session.router, prefix="/session", tags=["session"])
app.include_router(cities.router, prefix="/cities", tags=["cities"])
app.include_router(weather.router, prefix="/weather", tags=["weather"])
app.include_router(search.router, prefix="/search", tags=["search"])

# shopeasy/core/error_handlers.py

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
import logging
import traceback
import uuid

from .config import settings
from .exceptions import ShopEasyError, RateLimitedError, PartialCascadeFailure

logger = logging.getLogger(__name__)


def setup_error_handlers(app: FastAPI):
    """Set up global error handlers for the FastAPI application."""

    @app.exception_handler(ShopEasyError)
    async def shopeasy_error_handler(request: Request, exc: ShopEasyError):
        """Handle workflow errors raised by the services."""
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"ShopEasy Error: {exc.code.value}",
            extra={
                "error_code": exc.code.value,
                "user_message": exc.user_message,
                "technical_details": exc.technical_details,
                "request_url": str(request.url),
                "request_method": request.method,
            },
        )

        content = exc.to_response()
        if settings.is_development and exc.technical_details:
            content["error"]["details"] = exc.technical_details

        headers = None
        if isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after)}
        if isinstance(exc, PartialCascadeFailure):
            logger.error(f"Saga {exc.saga_id} stopped at step '{exc.failed_step}'")

        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors with better formatting."""

        errors = []
        for error in exc.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            errors.append({
                "field": field_path,
                "message": error["msg"],
                "type": error["type"],
            })

        logger.warning(
            "Validation error",
            extra={
                "validation_errors": errors,
                "request_url": str(request.url),
                "request_method": request.method,
            },
        )

        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "details": errors,
                },
            },
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        """Handle slowapi request throttling."""
        logger.warning(f"Rate limit exceeded for {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=429,
            content={
                "success": False,
                "error": {
                    "code": "RATE_LIMIT_EXCEEDED",
                    "message": f"Too many requests. Limit: {exc.detail}",
                },
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle standard HTTP exceptions with consistent format."""

        logger.warning(
            f"HTTP Exception: {exc.status_code}",
            extra={
                "status_code": exc.status_code,
                "detail": exc.detail,
                "request_url": str(request.url),
                "request_method": request.method,
            },
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": {
                    "code": f"HTTP_{exc.status_code}",
                    "message": exc.detail,
                },
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions with proper logging."""

        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
            extra={
                "exception_type": type(exc).__name__,
                "request_url": str(request.url),
                "request_method": request.method,
                "traceback": traceback.format_exc(),
            },
        )

        error = {
            "code": "INTERNAL_SERVER_ERROR",
            "message": "An internal server error occurred. Please try again later.",
        }
        # Don't expose internal details in production
        if settings.is_development:
            error["details"] = f"{type(exc).__name__}: {exc}"

        return JSONResponse(status_code=500, content={"success": False, "error": error})


# Middleware for request ID tracking
async def add_request_id_middleware(request: Request, call_next):
    """Add request ID for better error tracking."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response

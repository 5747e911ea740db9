"""
Error Handlers
Exception handlers that render every failure as a JSON body with an `error` field.
Outside production the body also carries the internal message.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stockroom.core.config import get_settings
from stockroom.core.exceptions import BaseServiceError

logger = logging.getLogger(__name__)


def _error_body(public_message: str, exc: Exception = None, **extra) -> dict:
    body = {"error": public_message}
    if exc is not None and not get_settings().is_production:
        body["type"] = exc.__class__.__name__
        body["detail"] = str(exc)
    body.update(extra)
    return body


def setup_error_handlers(app: FastAPI) -> None:
    """
    Set up custom error handlers for the FastAPI app.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(BaseServiceError)
    async def service_error_handler(request: Request, exc: BaseServiceError):
        """Handle domain errors raised by services and dependencies."""
        if exc.status_code >= 500:
            logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
        else:
            logger.warning(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")

        extra = {}
        if exc.details and not get_settings().is_production:
            extra["details"] = exc.details

        # 4xx messages are written for the caller; 5xx messages may leak internals
        public = exc.message if exc.status_code < 500 else exc.public_message
        return JSONResponse(status_code=exc.status_code, content=_error_body(public, exc, **extra))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        logger.warning(f"Validation error on {request.url.path}: {exc}")

        errors = [
            {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": error.get("type", ""),
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Request validation failed", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(f"Unexpected error on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Internal server error", exc),
        )

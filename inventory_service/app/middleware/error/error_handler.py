"""
Error handling for Inventory Service.

Every failure leaves the API as ``{"error": {...}}`` carrying the error type,
message, correlation id, caller and request line.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...core.exceptions import InventoryServiceError
from ...utils.logging import setup_inventory_logging

logger = setup_inventory_logging("inventory_service.error_handler")


def error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Build the error body and log client errors at warning level."""
    context = {
        "correlation_id": request.headers.get("X-Correlation-ID", "unknown"),
        "user_id": getattr(request.state, "user_id", "anonymous"),
        "path": request.url.path,
        "method": request.method,
    }
    body: Dict[str, Any] = {
        "type": error_type,
        "message": message,
        **context,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        body["details"] = details

    if status_code < 500:
        logger.warning(
            f"Request rejected: {error_type}",
            extra={**context, "status_code": status_code, "error_type": error_type},
        )
    return JSONResponse(status_code=status_code, content={"error": body})


async def handle_inventory_error(
    request: Request, exc: InventoryServiceError
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"Inventory error: {exc.message}",
            extra={"error_code": exc.error_code, "path": request.url.path},
        )
    return error_response(
        request, exc.status_code, exc.error_code, exc.message, exc.details
    )


async def handle_http_error(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(request, exc.status_code, "http_error", str(exc.detail))


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return error_response(
        request,
        422,
        "validation_error",
        "Request validation failed",
        {"validation_errors": problems},
    )


async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    return error_response(request, 400, "value_error", str(exc))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    # Internals stay in the log, never in the response
    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
        exc_info=exc,
    )
    return error_response(
        request, 500, "internal_server_error", "An internal server error occurred"
    )


def setup_inventory_error_handling(app: FastAPI) -> None:
    """Register the Inventory Service exception handlers."""
    app.add_exception_handler(InventoryServiceError, handle_inventory_error)  # type: ignore
    app.add_exception_handler(StarletteHTTPException, handle_http_error)  # type: ignore
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore
    app.add_exception_handler(ValueError, handle_value_error)  # type: ignore
    app.add_exception_handler(Exception, handle_unexpected_error)
    logger.info("Inventory Service error handling configured")

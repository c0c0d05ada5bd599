import logging
import traceback
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from carbon_registry.core.errors import RegistryError
from carbon_registry.settings import settings

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    message: str,
    error_type: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Every error leaves the API in the same envelope."""
    content = {
        "status_code": status_code,
        "error_message": message,
        "details": details or {},
        "error_type": error_type,
    }
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def registry_exception_handler(
    request: Request, exc: RegistryError
) -> JSONResponse:
    """Render a rejected ledger transition with its taxonomy status."""
    details = {**exc.details, "path": request.url.path}
    logger.warning(f"{exc.error_type} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.error_type, details)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Location is ('body' | 'query' | 'path', field, ...)
    errors = [
        {
            "location": " -> ".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning(f"Rejected request body on {request.url.path}: {errors}")
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "validation_error",
        {"errors": errors, "path": request.url.path},
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    logger.warning(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
    return error_response(
        exc.status_code,
        str(exc.detail),
        "http_error",
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.url.path}", exc_info=exc)
    details: dict[str, Any] = {"exception_type": type(exc).__name__}
    # Stack traces never leave a PROD deployment
    if settings.ENVIRONMENT != "PROD":
        details["stack"] = traceback.format_exception(exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), "server_error", details
    )

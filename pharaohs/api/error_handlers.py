"""
App-level exception handlers.

Every error leaves the API as ``{"message", "errorCode"}``, plus ``"stack"``
outside production.
"""

import logging
import secrets
import string
import time
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pharaohs.config import get_settings
from pharaohs.services.errors import PharaohsError

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase

HTTP_ERROR_CODES = {
    400: "VALIDATION_ERROR",
    401: "AUTHENTICATION_ERROR",
    403: "AUTHORIZATION_ERROR",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
    415: "UNSUPPORTED_MEDIA_TYPE",
    429: "RATE_LIMITED",
}


def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"


def generate_tracking_code() -> str:
    """Millisecond timestamp in base 36 followed by five random characters."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(5))
    return _to_base36(int(time.time() * 1000)) + suffix


def _error_body(
    message: str, error_code: str, exc: Exception, extra: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"message": message, "errorCode": error_code}
    if extra:
        body.update(extra)
    if not get_settings().is_production:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


async def pharaohs_error_handler(request: Request, exc: PharaohsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.error_code, exc, exc.extra),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    error_code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(detail, error_code, exc),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and parameters are reported as 400."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=400,
        content=_error_body(message, "VALIDATION_ERROR", exc),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    tracking_code = generate_tracking_code()
    logger.error(
        f"Unhandled error [{tracking_code}] on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content=_error_body("Something went wrong", tracking_code, exc),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PharaohsError, pharaohs_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

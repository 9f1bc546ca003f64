"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Maps domain and framework
exceptions to HTTP responses. Integration operations translate their own
failures into OperationResult; these handlers cover what escapes them
(authentication, request validation, configuration, unexpected errors).
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from veer.core.config import get_settings
from veer.domain.exceptions import VeerException

logger = logging.getLogger(__name__)

# Map domain error_code to HTTP status when applicable
_ERROR_CODE_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "INVARIANT_VIOLATION": 409,
    "OAUTH_EXCHANGE_ERROR": 502,
    "OAUTH_REFRESH_ERROR": 502,
    "TRANSPORT_ERROR": 502,
    "CONFIGURATION_ERROR": 500,
    "DECRYPTION_ERROR": 500,
}

# Never echo these to the client; they describe server configuration or secrets.
_INTERNAL_ERROR_CODES = frozenset({"CONFIGURATION_ERROR", "DECRYPTION_ERROR"})


def _veer_exception_handler(request: Request, exc: VeerException) -> JSONResponse:
    """Return JSON from VeerException.to_dict() with appropriate status code."""
    status = _ERROR_CODE_STATUS.get(exc.error_code, 400)
    if exc.error_code in _INTERNAL_ERROR_CODES:
        logger.error("%s on %s: %s %s", exc.error_code, request.url.path, exc.message, exc.details)
        return JSONResponse(
            status_code=status,
            content={
                "error": exc.error_code,
                "message": "Server is not configured correctly",
                "details": {},
            },
        )
    return JSONResponse(status_code=status, content=exc.to_dict())


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 422 with field-level validation details."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": [
                {"field": ".".join(str(p) for p in e.get("loc", ())[1:]), "message": e.get("msg")}
                for e in exc.errors()
            ],
        },
    )


def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Return JSON for Starlette HTTP exceptions (status + detail)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP_ERROR", "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception: %s", exc)
    settings = get_settings()
    detail: Any = str(exc) if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Call once after creating the app. Handlers: VeerException (and
    subclasses), RequestValidationError, StarletteHTTPException, generic Exception.
    """
    app.add_exception_handler(VeerException, _veer_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)

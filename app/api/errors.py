"""
Exception handlers.

Every error leaves the API in the same shape:

    {"error": {"code": "NOT_FOUND", "message": "...", "details": ...}}

so the client facade can map it back onto the error taxonomy without
parsing messages.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import (
    CONFLICT, INTERNAL_ERROR, NOT_FOUND, UNAVAILABLE, VALIDATION_ERROR, PicksError
)
from app.core.logging import get_logger
from app.models.schemas import ErrorResponse

logger = get_logger(__name__)

_CODES_BY_STATUS = {
    400: VALIDATION_ERROR,
    403: "FORBIDDEN",
    404: NOT_FOUND,
    405: "METHOD_NOT_ALLOWED",
    409: CONFLICT,
    422: VALIDATION_ERROR,
    501: "NOT_IMPLEMENTED",
    503: UNAVAILABLE,
}

# OpenAPI documentation of the shared error shape, for include_router(responses=...)
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed input"},
    404: {"model": ErrorResponse, "description": "Unknown identifier"},
    503: {"model": ErrorResponse, "description": "Store unavailable"},
}
WRITE_ERROR_RESPONSES = {
    **ERROR_RESPONSES,
    403: {"model": ErrorResponse, "description": "Invalid admin token"},
    409: {"model": ErrorResponse, "description": "Conflicts with stored state"},
}


def error_body(code: str, message: str, details=None) -> dict:
    return {"error": {"code": code, "message": message, "details": details}}


async def picks_error_handler(request: Request, exc: PicksError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query/path/body parameters are a 400, like any other bad input."""
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_body(VALIDATION_ERROR, "Request validation failed", details),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _CODES_BY_STATUS.get(exc.status_code, f"HTTP_{exc.status_code}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=error_body(INTERNAL_ERROR, "Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PicksError, picks_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

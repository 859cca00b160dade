import logging
from typing import Any

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from thyrotrack.middleware.tracing import TRACE_ID_CTX_VAR

logger = logging.getLogger("thyrotrack")


def status_to_code(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        413: "PAYLOAD_TOO_LARGE",
        415: "UNSUPPORTED_MEDIA_TYPE",
        422: "UNPROCESSABLE_ENTITY",
        429: "TOO_MANY_REQUESTS",
        500: "INTERNAL_SERVER_ERROR",
    }
    return mapping.get(status_code, f"HTTP_{status_code}")


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", None) or TRACE_ID_CTX_VAR.get()


def error_envelope(request: Request, status_code: int, message: str, details: Any = None, headers=None) -> JSONResponse:
    body = {"code": status_to_code(status_code), "message": message, "trace_id": _trace_id(request)}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    detail: Any = exc.detail
    message = detail if isinstance(detail, str) else "HTTP error"
    return error_envelope(request, exc.status_code, message, detail, headers=getattr(exc, "headers", None))


async def handle_validation_exception(request: Request, exc: RequestValidationError):
    return error_envelope(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Request validation failed",
        exc.errors(),
    )


async def handle_rate_limit_exception(request: Request, exc: RateLimitExceeded):
    logger.info({
        "function": "rate_limit",
        "path": str(request.url.path),
        "limit": str(exc.detail),
    })
    return error_envelope(
        request,
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Too many requests. Please wait a bit and try again.",
        headers={"Retry-After": "60"},
    )


async def handle_unhandled_exception(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return error_envelope(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred",
        str(exc),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_exception)
    app.add_exception_handler(RateLimitExceeded, handle_rate_limit_exception)
    app.add_exception_handler(Exception, handle_unhandled_exception)

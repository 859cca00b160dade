import logging
import re
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

TRACE_ID_CTX_VAR: ContextVar[str] = ContextVar("trace_id", default="")
TRACE_HEADER = "x-trace-id"

# Caller-supplied ids are echoed into headers and logs, so keep them tame
_TRACE_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

logger = logging.getLogger("thyrotrack")


def resolve_trace_id(incoming: str | None) -> str:
    """Reuse a well-formed upstream trace id, otherwise mint a fresh uuid4."""
    if incoming and _TRACE_ID_PATTERN.match(incoming):
        return incoming
    return str(uuid.uuid4())


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Tag every request with a trace id and log one access line per request.

    The id lives in a context variable so error envelopes and log lines can
    reference it, and is returned to the client in the ``x-trace-id`` header.
    """
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        trace_id = resolve_trace_id(request.headers.get(TRACE_HEADER))
        TRACE_ID_CTX_VAR.set(trace_id)
        request.state.trace_id = trace_id
        started = time.perf_counter()

        response = await call_next(request)

        response.headers[TRACE_HEADER] = trace_id
        logger.info({
            "function": "request",
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 1),
        })
        return response

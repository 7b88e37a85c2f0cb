"""
Request tracing.

Every request gets a trace id: the caller's X-Trace-Id when it looks like
one, a fresh id otherwise. The id is bound to the structlog context together
with the request method and path, and echoed back on the response.
"""

import re
from typing import Optional
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

TRACE_HEADER = "X-Trace-Id"

# Incoming ids end up in log lines; anything else is replaced
_TRACE_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


def resolve_trace_id(header_value: Optional[str]) -> str:
    if header_value and _TRACE_ID_PATTERN.match(header_value):
        return header_value
    return uuid.uuid4().hex


class TraceMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        trace_id = resolve_trace_id(request.headers.get(TRACE_HEADER))
        structlog.contextvars.bind_contextvars(
            trace_id=trace_id,
            http_method=request.method,
            http_path=request.url.path,
        )
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("trace_id", "http_method", "http_path")

        response.headers[TRACE_HEADER] = trace_id
        return response

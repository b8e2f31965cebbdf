"""
Middleware for request correlation ID tracking.

HTTP requests get their correlation ID from this middleware; WebSocket
connections set one per connection via ``set_correlation_id`` so that every
log line emitted inside a connection's task can be traced back to it.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from chatcast.constants import CORRELATION_ID_LENGTH

# Context variable for storing correlation ID per request or connection
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def new_correlation_id() -> str:
    """Generate a fresh short correlation ID."""
    return str(uuid.uuid4())[:CORRELATION_ID_LENGTH]


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation IDs to requests for distributed tracing.

    This middleware:
    - Extracts correlation ID from X-Correlation-ID header or generates new 8-char UUID
    - Limits all correlation IDs to 8 characters for consistency
    - Stores correlation ID in request.state.request_id
    - Stores correlation ID in context variable for access in logging
    - Adds correlation ID to response headers for client tracking
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = request.headers.get("X-Correlation-ID") or new_correlation_id()
        cid = cid[:CORRELATION_ID_LENGTH]

        request.state.request_id = cid
        correlation_id.set(cid)

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = cid

        return response


def set_correlation_id(cid: str) -> None:
    """Bind a correlation ID to the current task context."""
    correlation_id.set(cid[:CORRELATION_ID_LENGTH])


def get_correlation_id() -> str:
    """
    Get the correlation ID for the current request or connection context.

    Returns:
        The correlation ID string, or empty string if not set.
    """
    return correlation_id.get()

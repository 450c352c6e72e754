"""Middleware: request ID propagation, structured access logging."""

import hashlib
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from sessionauth.core.errors import internal_error_response

logger = logging.getLogger("sessionauth.access")

REQUEST_ID_HEADER = "X-Request-ID"


def _incoming_request_id(request: Request) -> str | None:
    """Reuse a proxy-assigned request ID when it is a well-formed UUID."""
    raw = request.headers.get(REQUEST_ID_HEADER)
    if not raw:
        return None
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        return None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to request.state and echo it on the response.

    Unhandled exceptions from the app are rendered here as a 500 so the
    response still carries the request ID.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _incoming_request_id(request) or str(uuid.uuid4())
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception:
            response = internal_error_response(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per request.

    The user is only known after the session cookie was validated, so
    user_id is read back from request.state once the endpoint returned.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        elapsed_ms = (time.monotonic() - start) * 1000

        user_id = getattr(request.state, "user_id", None)
        level = logging.ERROR if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "request_id=%s user=%s ip=%s method=%s path=%s status=%d elapsed_ms=%.1f",
            getattr(request.state, "request_id", "-"),
            hash_user_id(user_id) if user_id else "-",
            request.client.host if request.client else "-",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response


def hash_user_id(uid) -> str:
    """First 12 hex chars of SHA-256, so logs never carry raw user ids."""
    return hashlib.sha256(str(uid).encode()).hexdigest()[:12]

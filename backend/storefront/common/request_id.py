"""Request ID propagation and per-request access logging."""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.core.config import settings
from storefront.core.logging import bind_log_context, get_logger, reset_log_context

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def route_group(path: str) -> str:
    """Coarse route family used to slice access logs: oauth, auth, health or other."""
    prefix = settings.API_PREFIX.rstrip("/")
    if prefix and path.startswith(prefix):
        path = path[len(prefix):]
    if path.startswith("/auth/oauth"):
        return "oauth"
    if path.startswith("/auth"):
        return "auth"
    if path == "/health":
        return "health"
    return "other"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assign a request ID and bind it, with the route group, to every log line of the request.

    Login flows add their stage to the same context, so the completion line
    shows where an auth request ended.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = bind_log_context(
            request_id=request_id,
            route_group=route_group(request.url.path),
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.error(
                    "Request failed",
                    extra={"status_code": 500, "latency_ms": _elapsed_ms(started)},
                    exc_info=True,
                )
                raise

            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info(
                "Request completed",
                extra={"status_code": response.status_code, "latency_ms": _elapsed_ms(started)},
            )
            return response
        finally:
            reset_log_context(token)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)

"""Per-request access logging with a request id bound for downstream logs."""

import time
import uuid
from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("agent_swap.http")

REQUEST_ID_HEADER = "x-request-id"

# Probed often by orchestrators; kept out of INFO output
QUIET_PATHS = frozenset({"/health"})


def _level_for(path: str, status_code: int) -> Callable[..., None]:
    if status_code >= 500:
        return logger.error
    if status_code >= 400:
        return logger.warning
    if path in QUIET_PATHS:
        return logger.debug
    return logger.info


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request once it completes, with status and duration."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        path = request.url.path
        status_code = 500
        started = time.perf_counter()

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await call_next(request)
                status_code = response.status_code
                response.headers[REQUEST_ID_HEADER] = request_id
                return response
            finally:
                _level_for(path, status_code)(
                    "http_request",
                    method=request.method,
                    path=path,
                    status=status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 1),
                )

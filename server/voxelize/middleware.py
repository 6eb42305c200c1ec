# ─────────────────────────────────────────────────────────────────────────────
# Request Middleware — correlation ID, timing, structured logging
# ─────────────────────────────────────────────────────────────────────────────


import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from voxelize.logging_config import bind_request_context

logger = structlog.get_logger()

_MAX_REQUEST_ID_LENGTH = 64


def resolve_request_id(request: Request) -> str:
    """Reuse a caller-supplied X-Request-ID, else mint a short one."""
    supplied = request.headers.get("x-request-id", "").strip()
    if supplied:
        return supplied[:_MAX_REQUEST_ID_LENGTH]
    return str(uuid.uuid4())[:8]


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Adds request ID, logs timing, binds the ID for structured logging.

    Skips logging for /health (too noisy from platform health checks).
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request)
        request.state.request_id = request_id
        bind_request_context(request_id=request_id)
        start = time.perf_counter()

        response: Response = await call_next(request)

        duration_ms = (time.perf_counter() - start) * 1000

        if not request.url.path.startswith("/health"):
            logger.info(
                "request_completed",
                method=request.method,
                path=str(request.url.path),
                status=response.status_code,
                duration_ms=round(duration_ms, 1),
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = str(round(duration_ms, 1))
        return response

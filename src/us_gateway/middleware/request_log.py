"""Request logging middleware.

Logs every HTTP request with method, path, status code, latency and a short
request ID. An incoming X-Request-ID header is reused (so IDs line up with the
upstream gateway), otherwise one is generated. The ID is stored on
request.state for ApiResponse and echoed back in the X-Request-ID header.

Log format:
    INFO [PUT] /api/v1/cards/42 → 200 (23ms) req_a1b2c3d4e5f6
5xx responses are logged at WARNING.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("us.request")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER)
        request.state.request_id = incoming[:64] if incoming else f"req_{uuid.uuid4().hex[:12]}"

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
        )
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response

import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)


class TimingMiddleware(BaseHTTPMiddleware):
    """Adds X-Latency-Ms and echoes X-Request-Id for request tracing"""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request.state.started_at = start
        response = await call_next(request)
        latency_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Latency-Ms"] = str(latency_ms)

        request_id = request.headers.get("X-Request-Id")
        if request_id:
            response.headers["X-Request-Id"] = request_id

        logger.debug(f"{request.method} {request.url.path} -> {response.status_code} ({latency_ms}ms)")
        return response

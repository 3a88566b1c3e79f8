import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("api.access")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Emit one structured log line per request with status and latency."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        dur_ms = int((time.perf_counter() - start) * 1000)
        identity = getattr(request.state, "identity", None)
        extra = {
            "route": f"{request.method} {request.url.path}",
            "status": response.status_code,
            "latency_ms": dur_ms,
            "user": getattr(identity, "id", None),
            "role": getattr(getattr(identity, "role", None), "value", None),
        }
        if response.status_code >= 500:
            logger.error("request", extra=extra)
        else:
            logger.info("request", extra=extra)
        return response

"""HTTP middlewares for request correlation and access logging."""

from .logging import LoggingMiddleware
from .request_id import RequestIdMiddleware, request_id_ctx

__all__ = ["LoggingMiddleware", "RequestIdMiddleware", "request_id_ctx"]

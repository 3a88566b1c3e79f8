import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_ID_HEADER = "X-Request-ID"
# Client supplied ids end up in logs; anything else is replaced.
_VALID_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# Context variable used by log filter and error envelopes
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def resolve_request_id(header: str | None) -> str:
    """Return ``header`` if it is a safe id, else a fresh UUID4."""
    if header and _VALID_ID.match(header):
        return header
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id and echo it in the response."""

    async def dispatch(self, request: Request, call_next):
        req_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = request_id_ctx.set(req_id)
        request.state.request_id = req_id
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers[REQUEST_ID_HEADER] = req_id
        return response

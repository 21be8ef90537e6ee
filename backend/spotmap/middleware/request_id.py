"""
SpotMap Backend: Request ID Middleware
=======================================

What:  Gives every request a short correlation id and returns it in the
       X-Request-ID response header.
Why:   Ties a client's error report to the server log lines of that request.
How:   A client-supplied X-Request-ID is kept; otherwise an 8-character
       UUID prefix is generated. The id is stored in a ContextVar so log
       lines and error bodies of the same request can include it.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response

"""
SoulSocial Backend: Request ID Middleware
===========================================

What:  Assigns a short correlation id to each request and returns it in the
       X-Request-ID response header.
How:   Reuses the client's X-Request-ID when it sends one, otherwise generates
       one. The id lives in a ContextVar so loggers and exception handlers can
       read it without access to the request object.

Error responses echo the id in their body, so a user report ("request
1f0c2a9e failed") leads straight to the matching server log lines.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 8 hex chars are plenty for correlating log lines
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response

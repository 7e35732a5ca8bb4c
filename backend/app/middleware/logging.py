"""
SoulSocial Backend: Request Logging Middleware
================================================

What:  One access log line per HTTP request: method, path, status, duration,
       request id and client address.
When:  Runs inside RequestIDMiddleware, so the request id is already set.

Log level follows the status code (5xx ERROR, 4xx WARNING, else INFO) so
alerting can key off severity. Request bodies are never logged: they carry
passwords and uploaded images.

WebSocket traffic does not pass through here (BaseHTTPMiddleware only sees
HTTP requests); the broadcaster logs connects and disconnects itself.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("soulsocial.access")

# Probed every few seconds; logging them would drown everything else
QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response

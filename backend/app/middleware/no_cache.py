"""
SoulSocial Backend: No-Cache Middleware
=========================================

What:  Marks every response as non-cacheable unless the route already set
       its own Cache-Control (stored files do).
Why:   The feed changes constantly; browsers and proxies must always
       re-fetch rather than show a stale list after a `postsUpdated` event.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, private",
    "Pragma": "no-cache",
    "Expires": "0",
}


class NoCacheMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        if "cache-control" not in response.headers:
            for name, value in NO_CACHE_HEADERS.items():
                response.headers[name] = value
        return response

"""CORS headers middleware.

The browser client calls the proxy from another origin, so every response,
proxied or local, carries the same permissive CORS headers.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .config import CORS_HEADERS


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Add the configured CORS headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response

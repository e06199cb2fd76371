"""Reverse proxy to the food-delivery upstream.

Why is this its own module?
- Keeps the route handler in main.py one line long.
- The path rewrite is the only rule here, and it is easy to test in isolation.

What the forwarder does to a request:
- strips hop-by-hop headers
- rewrites the configured prefix (see config.PROXY_REWRITE)
- points Host and Origin at the upstream, so the upstream sees a same-origin call

What it does to the response: nothing. Status, headers and raw body bytes are
streamed back as received. There are no retries and no caching.
"""

from __future__ import annotations

import httpx
import structlog
from fastapi import HTTPException, Request
from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from .config import PROXY_PREFIX, PROXY_REWRITE, PROXY_TIMEOUT, PROXY_UPSTREAM

logger = structlog.get_logger()

# RFC 7230 6.1: these describe one connection and must not be forwarded.
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
})

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


class ProxyForwarder:
    """Forward requests under `prefix` to `upstream`.

    The httpx.AsyncClient is created once and reused for connection pooling;
    call `aclose()` at shutdown.
    """

    def __init__(
        self,
        upstream: str = PROXY_UPSTREAM,
        prefix: str = PROXY_PREFIX,
        rewrite: str = PROXY_REWRITE,
        timeout: float = PROXY_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.upstream = httpx.URL(upstream)
        self.prefix = prefix.rstrip("/")
        self.rewrite = rewrite
        self.client = httpx.AsyncClient(
            base_url=self.upstream,
            timeout=timeout,
            transport=transport,
        )

    @property
    def upstream_origin(self) -> str:
        origin = f"{self.upstream.scheme}://{self.upstream.host}"
        if self.upstream.port is not None:
            origin += f":{self.upstream.port}"
        return origin

    def rewrite_path(self, path: str) -> str:
        """Swap the configured prefix for the rewrite target.

        Examples (prefix "/api/proxy/swiggy/dapi"):
            rewrite ""      : /api/proxy/swiggy/dapi/foo -> /foo
            rewrite "/dapi" : /api/proxy/swiggy/dapi/foo -> /dapi/foo

        Paths outside the prefix are returned unchanged.
        """
        if path != self.prefix and not path.startswith(self.prefix + "/"):
            return path
        return (self.rewrite + path[len(self.prefix):]) or "/"

    def _upstream_headers(self, request: Request) -> list[tuple[str, str]]:
        headers = []
        for name, value in request.headers.items():
            lowered = name.lower()
            # httpx sets Host and Content-Length itself from the URL and body.
            if lowered in HOP_BY_HOP_HEADERS or lowered in ("host", "content-length"):
                continue
            if lowered == "origin":
                value = self.upstream_origin
            headers.append((name, value))
        return headers

    async def forward(self, request: Request) -> StreamingResponse:
        """Send `request` upstream and stream the answer back.

        Raises:
            HTTPException(502) when the upstream cannot be reached.
        """
        # Rewrite the undecoded path so escapes such as %2F reach the upstream
        # as sent. httpx keeps existing %XX escapes when it quotes the path.
        raw_path = request.scope.get("raw_path") or request.url.path.encode("utf-8")
        path = self.rewrite_path(raw_path.decode("utf-8"))
        url = httpx.URL(path=path, query=request.scope.get("query_string") or None)

        upstream_request = self.client.build_request(
            request.method,
            url,
            headers=self._upstream_headers(request),
            content=await request.body(),
        )

        try:
            upstream_response = await self.client.send(upstream_request, stream=True)
        except httpx.TransportError as e:
            logger.warning(
                "proxy.upstream_error",
                method=request.method,
                path=path,
                error=repr(e),
            )
            # 502 means our upstream dependency failed.
            raise HTTPException(status_code=502, detail=f"Upstream error: {e!r}")

        logger.info(
            "proxy.forwarded",
            method=request.method,
            path=path,
            status=upstream_response.status_code,
        )

        response = StreamingResponse(
            upstream_response.aiter_raw(),
            status_code=upstream_response.status_code,
            background=BackgroundTask(upstream_response.aclose),
        )
        # Raw list keeps repeated headers such as Set-Cookie intact.
        response.raw_headers = [
            (name.lower(), value)
            for name, value in upstream_response.headers.raw
            if name.decode("latin-1").lower() not in HOP_BY_HOP_HEADERS
        ]
        return response

    async def aclose(self) -> None:
        await self.client.aclose()


async def proxy_endpoint(request: Request) -> StreamingResponse:
    """Route handler; the forwarder lives on `app.state`."""
    return await request.app.state.proxy.forward(request)

"""foodhub FastAPI application.

Responsibilities:
- Proxy `/api/proxy/swiggy/dapi/*` to the food-delivery upstream.
- Serve the realtime comment channel on `/socket` (WebSocket).
- Add CORS headers to every response.

Both halves share one listener. The only long-lived resources are the Mongo
store and the proxy's HTTP client; the lifespan opens them at startup and
closes them at shutdown.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request
from pymongo.errors import PyMongoError

from . import __version__
from .comments import CommentService
from .config import (
    HOST,
    PORT,
    PROXY_PREFIX,
    PROXY_REWRITE,
    PROXY_UPSTREAM,
    SOCKET_NAMESPACE,
    SOCKET_PATH,
)
from .log import configure_logging
from .middleware import CORSHeadersMiddleware
from .mongo import RestaurantStore
from .proxy import PROXY_METHODS, ProxyForwarder, proxy_endpoint
from .realtime.channel import ChannelRegistry
from .realtime.websocket import comment_socket

logger = structlog.get_logger()


def create_app(
    store: RestaurantStore | None = None,
    upstream: str = PROXY_UPSTREAM,
    proxy_prefix: str = PROXY_PREFIX,
    proxy_rewrite: str = PROXY_REWRITE,
    upstream_transport: httpx.AsyncBaseTransport | None = None,
    socket_path: str = SOCKET_PATH,
    namespace: str = SOCKET_NAMESPACE,
) -> FastAPI:
    """Build the application.

    Args:
        store: Restaurant store to use. When None, one is connected from
            MONGO_URI at startup. Either way it is closed at shutdown.
        upstream_transport: httpx transport for the proxy client. Tests pass an
            httpx.MockTransport here.

    The remaining arguments default to the values in config.py.
    """
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("foodhub.starting", version=__version__, port=PORT, upstream=upstream)

        app.state.store = store if store is not None else RestaurantStore.connect()
        app.state.channel = ChannelRegistry()
        app.state.comment_service = CommentService(app.state.store, app.state.channel, namespace)
        app.state.proxy = ProxyForwarder(
            upstream=upstream,
            prefix=proxy_prefix,
            rewrite=proxy_rewrite,
            transport=upstream_transport,
        )

        yield

        logger.info("foodhub.shutdown")
        await app.state.proxy.aclose()
        app.state.store.close()

    app = FastAPI(title="foodhub", version=__version__, lifespan=lifespan)
    app.add_middleware(CORSHeadersMiddleware)

    @app.get("/health")
    def health(request: Request) -> dict[str, str]:
        """Liveness endpoint, plus a Mongo ping."""
        checks = {"status": "ok"}
        try:
            request.app.state.store.ping()
            checks["mongo"] = "ok"
        except PyMongoError as e:
            checks["mongo"] = f"error: {e}"
        return checks

    prefix = proxy_prefix.rstrip("/")
    app.add_api_route(prefix, proxy_endpoint, methods=PROXY_METHODS, include_in_schema=False)
    app.add_api_route(
        prefix + "/{path:path}", proxy_endpoint, methods=PROXY_METHODS, include_in_schema=False
    )

    app.add_api_websocket_route(socket_path, comment_socket)

    return app


# Default app instance (used by uvicorn: foodhub.main:app)
app = create_app()


def run() -> None:
    """Console entrypoint: serve `app` on HOST:PORT."""
    logger.info("foodhub.listening", host=HOST, port=PORT)
    uvicorn.run(app, host=HOST, port=PORT)

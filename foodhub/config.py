"""foodhub configuration.

This module only reads environment variables.

The service has two halves that share one listener:
- a reverse proxy in front of the food-delivery upstream
- a realtime comment channel backed by MongoDB

All defaults are reasonable for development. In production you should override
them with environment variables.
"""

from __future__ import annotations

import os

# --- Server ------------------------------------------------------------------
HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = int(os.getenv("PORT", "3001"))

# --- MongoDB -----------------------------------------------------------------
# Mongo connection string. Example: "mongodb://172.31.2.197:27017"
MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")

# Database name
MONGO_DB: str = os.getenv("MONGO_DB", "foodhub")

# Collection holding one document per restaurant
MONGO_COLLECTION: str = os.getenv("MONGO_COLLECTION", "restaurants")

# --- Proxy -------------------------------------------------------------------
# Origin every proxied request is sent to.
PROXY_UPSTREAM: str = os.getenv("PROXY_UPSTREAM", "https://www.swiggy.com")

# Inbound path prefix that selects the proxy route.
PROXY_PREFIX: str = os.getenv("PROXY_PREFIX", "/api/proxy/swiggy/dapi")

# What the prefix is replaced with before forwarding:
#   ""      -> /api/proxy/swiggy/dapi/foo is sent upstream as /foo
#   "/dapi" -> /api/proxy/swiggy/dapi/foo is sent upstream as /dapi/foo
PROXY_REWRITE: str = os.getenv("PROXY_REWRITE", "")

# Seconds; passed straight to httpx.
PROXY_TIMEOUT: float = float(os.getenv("PROXY_TIMEOUT", "30"))

# --- Realtime ----------------------------------------------------------------
# WebSocket route clients connect to.
SOCKET_PATH: str = os.getenv("SOCKET_PATH", "/socket")

# Broadcast namespace; every client on it receives every broadcast.
SOCKET_NAMESPACE: str = os.getenv("SOCKET_NAMESPACE", "/socket")

# --- Logging -----------------------------------------------------------------
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Render JSON lines instead of the colored console output.
LOG_JSON: bool = os.getenv("LOG_JSON", "false").lower() in ("1", "true", "yes")

# --- CORS --------------------------------------------------------------------
# Sent on every response, proxied or not.
CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

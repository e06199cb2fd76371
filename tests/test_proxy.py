"""Reverse proxy tests; the upstream is an httpx.MockTransport."""

import httpx
import pytest
from fastapi.testclient import TestClient

from foodhub.main import create_app
from foodhub.proxy import ProxyForwarder
from tests.fakes import upstream_response

PREFIX = "/api/proxy/swiggy/dapi"


@pytest.mark.parametrize(
    "rewrite, path, expected",
    [
        ("", f"{PREFIX}/foo", "/foo"),
        ("/dapi", f"{PREFIX}/foo", "/dapi/foo"),
        ("", f"{PREFIX}/restaurants/list/v5", "/restaurants/list/v5"),
        ("", PREFIX, "/"),
        ("/dapi", PREFIX, "/dapi"),
        ("", "/health", "/health"),
        ("", f"{PREFIX}extra/foo", f"{PREFIX}extra/foo"),
    ],
)
def test_rewrite_path(rewrite, path, expected):
    forwarder = ProxyForwarder(prefix=PREFIX, rewrite=rewrite)
    assert forwarder.rewrite_path(path) == expected


def test_upstream_origin():
    assert ProxyForwarder(upstream="https://www.swiggy.com").upstream_origin == "https://www.swiggy.com"
    assert ProxyForwarder(upstream="http://localhost:8080").upstream_origin == "http://localhost:8080"


def test_get_is_forwarded_with_prefix_stripped(client, upstream_requests):
    resp = client.get(
        f"{PREFIX}/restaurants/list/v5?lat=12.9&lng=77.6",
        headers={"Origin": "http://localhost:3000", "Authorization": "Bearer t"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"path": "/restaurants/list/v5"}
    assert resp.headers["X-Upstream"] == "swiggy"

    [sent] = upstream_requests
    assert sent.method == "GET"
    assert sent.url.host == "www.swiggy.com"
    assert sent.url.path == "/restaurants/list/v5"
    assert sent.url.params["lat"] == "12.9"
    assert sent.url.params["lng"] == "77.6"
    assert sent.headers["host"] == "www.swiggy.com"
    assert sent.headers["origin"] == "https://www.swiggy.com"
    assert sent.headers["authorization"] == "Bearer t"


def test_middle_rewrite_keeps_dapi(store, upstream, upstream_requests):
    app = create_app(store=store, upstream_transport=upstream, proxy_rewrite="/dapi")
    with TestClient(app) as c:
        resp = c.get(f"{PREFIX}/foo")

    assert resp.status_code == 200
    assert upstream_requests[0].url.path == "/dapi/foo"


def test_post_body_is_forwarded(client, upstream_requests):
    resp = client.post(
        f"{PREFIX}/menu/cart",
        content=b'{"items":[1,2]}',
        headers={"Content-Type": "application/json"},
    )

    assert resp.status_code == 200
    [sent] = upstream_requests
    assert sent.method == "POST"
    assert sent.content == b'{"items":[1,2]}'
    assert sent.headers["content-type"] == "application/json"


def test_upstream_status_and_body_are_relayed(store, upstream_requests):
    def handler(request):
        upstream_requests.append(request)
        return upstream_response(404, b"no such restaurant", headers={"Content-Type": "text/plain"})

    app = create_app(store=store, upstream_transport=httpx.MockTransport(handler))
    with TestClient(app) as c:
        resp = c.get(f"{PREFIX}/menu/pl?restaurantId=1")

    assert resp.status_code == 404
    assert resp.text == "no such restaurant"
    assert resp.headers["content-type"] == "text/plain"


def test_unreachable_upstream_fails_the_request(store):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    app = create_app(store=store, upstream_transport=httpx.MockTransport(handler))
    with TestClient(app) as c:
        resp = c.get(f"{PREFIX}/foo")

    assert resp.status_code == 502
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_cors_headers_on_proxied_response(client):
    resp = client.get(f"{PREFIX}/foo")

    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert resp.headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE"
    assert resp.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"


def test_routes_outside_prefix_are_not_proxied(client, upstream_requests):
    resp = client.get("/api/proxy/other/foo")

    assert resp.status_code == 404
    assert upstream_requests == []


def test_percent_escapes_reach_upstream_unchanged(client, upstream_requests):
    resp = client.get(f"{PREFIX}/a%2Fb%20c?q=1")

    assert resp.status_code == 200
    [sent] = upstream_requests
    assert sent.url.raw_path == b"/a%2Fb%20c?q=1"


def test_no_query_string_adds_no_question_mark(client, upstream_requests):
    client.get(f"{PREFIX}/foo")

    assert upstream_requests[0].url.raw_path == b"/foo"

"""Test fixtures.

- `store` is a RestaurantStore over mongomock, so no MongoDB server is needed.
- `upstream` is an httpx.MockTransport standing in for the food-delivery API;
  every request it sees is appended to `upstream_requests`.
- `client` is a Starlette TestClient used as a context manager, so the app
  lifespan runs and WebSocket sessions share one event loop.
"""

import httpx
import mongomock
import pytest
from fastapi.testclient import TestClient

from foodhub.main import create_app
from foodhub.mongo import RestaurantStore
from tests.fakes import upstream_response


@pytest.fixture()
def store():
    return RestaurantStore(mongomock.MongoClient(), "foodhub_test", "restaurants")


@pytest.fixture()
def upstream_requests():
    return []


@pytest.fixture()
def upstream(upstream_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        upstream_requests.append(request)
        return upstream_response(
            200,
            json_body={"path": request.url.path},
            headers={"X-Upstream": "swiggy"},
        )

    return httpx.MockTransport(handler)


@pytest.fixture()
def app(store, upstream):
    return create_app(store=store, upstream_transport=upstream)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c

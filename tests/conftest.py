from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

import app.workers.fetcher as fetcher_module
from app.main import app
from app.models.target import TargetUrl
from app.repositories.cache import FetchCache, fetch_cache
from app.services.scraper.document import Document


@pytest.fixture(autouse=True)
def fresh_state():
    """Start every test with an empty shared cache and no shared HTTP client.

    The client is dropped so that respx can intercept the freshly-created
    one, and so that a client bound to a previous event loop never leaks
    into the next test.
    """
    fetcher_module._http_client = None
    fetch_cache.clear()
    yield
    fetcher_module._http_client = None
    fetch_cache.clear()


@pytest.fixture
def cache() -> FetchCache:
    return FetchCache()


@pytest.fixture
def target() -> TargetUrl:
    return TargetUrl(url="https://x.com", scheme="https", host="x.com")


@pytest.fixture
def make_document():
    def _make(body: str = "", head: str = "") -> Document:
        return Document.parse(f"<html><head>{head}</head><body>{body}</body></html>")

    return _make


@pytest.fixture
def client():
    """TestClient with the shutdown hook mocked."""
    with patch("app.main.close_http_client", new_callable=AsyncMock):
        with TestClient(app) as c:
            yield c

from __future__ import annotations

from typing import Any, Callable, Dict, Union

import httpx
import pytest

from cryptodash.config.settings import reset_settings
from cryptodash.services.market_data import reset_adapter

Route = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeUpstream:
    """Records requests and answers them from a path-suffix routing table."""

    def __init__(self) -> None:
        self.routes: Dict[str, Route] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, json: Any = None, status: int = 200, **kwargs: Any) -> None:
        if "content" in kwargs:
            self.routes[path] = httpx.Response(status, **kwargs)
        else:
            self.routes[path] = httpx.Response(status, json=json, **kwargs)

    def fail(self, path: str, exc: Exception) -> None:
        self.routes[path] = exc

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        matches = [p for p in self.routes if request.url.path.endswith(p)]
        if not matches:
            return httpx.Response(404, json={"error": "not found"})
        route = self.routes[max(matches, key=len)]
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        return route

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def request_to(self, path: str) -> httpx.Request:
        for req in self.requests:
            if req.url.path.endswith(path):
                return req
        raise AssertionError(f"no request to {path}; saw {[r.url.path for r in self.requests]}")


@pytest.fixture()
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    for var in (
        "MARKET_PROVIDER",
        "MARKET_MODE",
        "MARKET_BASE_URL",
        "MARKET_PROXY_URL",
        "MARKET_PAGE_SIZE",
        "UPSTREAM_API_KEY",
        "COINGECKO_API_KEY",
        "COINCAP_API_KEY",
        "COINPAPRIKA_API_KEY",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_settings()
    reset_adapter()
    yield
    reset_settings()
    reset_adapter()

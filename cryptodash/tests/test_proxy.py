from __future__ import annotations

import json

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cryptodash.api import proxy as proxy_api
from cryptodash.config.settings import Settings, get_settings
from cryptodash.services.proxy import (
    CACHE_CONTROL,
    DEFAULT_CONTENT_TYPE,
    build_upstream_params,
    forward,
    sub_path_from_query,
    sub_path_from_segments,
)


def _settings(provider: str = "coingecko", api_key: str | None = None) -> Settings:
    return Settings(
        MARKET_PROVIDER=provider,
        MARKET_MODE="direct",
        MARKET_BASE_URL=None,
        MARKET_PROXY_URL="http://localhost:8000/api/proxy",
        MARKET_PAGE_SIZE=50,
        UPSTREAM_API_KEY=api_key,
        UPSTREAM_TIMEOUT_SECONDS=5.0,
        LOG_LEVEL="INFO",
    )


def test_params_drop_carrier_and_keep_repeats():
    items = [("path", "/coins/markets"), ("vs_currency", "usd"), ("ids", "a"), ("ids", "b")]
    assert build_upstream_params(items, None, "x_cg_demo_api_key") == [
        ("vs_currency", "usd"),
        ("ids", "a"),
        ("ids", "b"),
    ]


def test_params_inject_key_once():
    items = [("x_cg_demo_api_key", "from-browser"), ("per_page", "50")]
    assert build_upstream_params(items, "server", "x_cg_demo_api_key") == [
        ("per_page", "50"),
        ("x_cg_demo_api_key", "server"),
    ]


def test_sub_path_parsing():
    assert sub_path_from_query("coins/markets") == ("/coins/markets", [])
    assert sub_path_from_query("/assets?limit=50&x=1") == ("/assets", [("limit", "50"), ("x", "1")])
    assert sub_path_from_query("") == (None, [])
    assert sub_path_from_query("/") == (None, [])
    assert sub_path_from_segments("coins/bitcoin/market_chart") == "/coins/bitcoin/market_chart"
    assert sub_path_from_segments("coins/a b") == "/coins/a%20b"
    assert sub_path_from_segments("") is None


@pytest.mark.asyncio
async def test_forward_builds_exact_upstream_url(upstream):
    upstream.add("/coins/markets", content=b'[{"id":"bitcoin"}]')
    items = [("path", "/coins/markets"), ("vs_currency", "usd"), ("per_page", "50")]
    async with upstream.client() as client:
        result = await forward("/coins/markets", items, _settings(), client=client)

    req = upstream.requests[0]
    assert str(req.url).startswith("https://api.coingecko.com/api/v3/coins/markets?")
    assert sorted(req.url.params.multi_items()) == [("per_page", "50"), ("vs_currency", "usd")]
    assert req.headers["accept"] == "application/json"
    assert req.headers["user-agent"] == "crypto-dashboard/1.0"

    assert result.status_code == 200
    assert result.body == b'[{"id":"bitcoin"}]'
    assert result.headers["content-type"] == DEFAULT_CONTENT_TYPE
    assert result.headers["cache-control"] == CACHE_CONTROL


@pytest.mark.asyncio
async def test_forward_appends_configured_key(upstream):
    upstream.add("/coins/markets", json=[])
    items = [("vs_currency", "usd"), ("per_page", "50")]
    async with upstream.client() as client:
        await forward("/coins/markets", items, _settings(api_key="s3cret"), client=client)

    params = upstream.requests[0].url.params
    assert sorted(params.keys()) == ["per_page", "vs_currency", "x_cg_demo_api_key"]
    assert params["x_cg_demo_api_key"] == "s3cret"


@pytest.mark.asyncio
async def test_forward_mirrors_status_and_content_type(upstream):
    upstream.add("/coins/markets", status=429, content=b"slow down", headers={"content-type": "text/plain"})
    async with upstream.client() as client:
        result = await forward("/coins/markets", [], _settings(), client=client)

    assert result.status_code == 429
    assert result.body == b"slow down"
    assert result.headers["content-type"] == "text/plain"


@pytest.mark.asyncio
async def test_forward_replaces_401_body(upstream):
    upstream.add("/coins/markets", status=401, json={"upstream": "secret details"})
    async with upstream.client() as client:
        result = await forward("/coins/markets", [], _settings(), client=client)

    assert result.status_code == 401
    body = json.loads(result.body)
    assert body["error"] == "CoinGecko rejected the request (401)."
    assert "COINGECKO_API_KEY" in body["detail"]
    assert "secret details" not in result.body.decode()


@pytest.mark.asyncio
async def test_forward_unreachable_is_502_without_leaking_key(upstream):
    upstream.fail("/assets", httpx.ConnectError("cannot connect with apiKey=s3cret"))
    async with upstream.client() as client:
        result = await forward("/assets", [], _settings("coincap", api_key="s3cret"), client=client)

    assert result.status_code == 502
    body = json.loads(result.body)
    assert body["error"] == "Failed to reach upstream."
    assert "s3cret" not in body["detail"]


@pytest.mark.asyncio
async def test_forward_scrubs_key_echoed_in_body(upstream):
    upstream.add("/assets", content=b'{"echo":"apiKey=s3cret"}')
    async with upstream.client() as client:
        result = await forward("/assets", [], _settings("coincap", api_key="s3cret"), client=client)

    assert b"s3cret" not in result.body


@pytest.mark.asyncio
async def test_forward_missing_path_is_400():
    result = await forward(None, [], _settings())
    assert result.status_code == 400
    assert json.loads(result.body) == {"error": "Missing path query parameter."}


@pytest.fixture()
def proxy_client(upstream):
    app = FastAPI()
    app.include_router(proxy_api.router)
    app.dependency_overrides[get_settings] = lambda: _settings(api_key="s3cret")

    async def _client():
        async with upstream.client() as client:
            yield client

    app.dependency_overrides[proxy_api.get_proxy_client] = _client
    with TestClient(app) as client:
        yield client


def test_route_with_path_query_parameter(proxy_client, upstream):
    upstream.add("/coins/markets", json=[{"id": "bitcoin"}])
    resp = proxy_client.get("/api/proxy", params={"path": "/coins/markets", "vs_currency": "usd", "per_page": "50"})

    assert resp.status_code == 200
    assert resp.json() == [{"id": "bitcoin"}]
    assert resp.headers["cache-control"] == CACHE_CONTROL
    params = upstream.requests[0].url.params
    assert "path" not in params
    assert params["vs_currency"] == "usd"
    assert params["per_page"] == "50"
    assert "s3cret" not in resp.text


def test_route_with_segments_and_repeated_keys(proxy_client, upstream):
    upstream.add("/simple/price", json={"ok": True})
    resp = proxy_client.get("/api/proxy/simple/price?ids=bitcoin&ids=ethereum&vs_currencies=usd")

    assert resp.status_code == 200
    params = upstream.requests[0].url.params
    assert params.get_list("ids") == ["bitcoin", "ethereum"]


def test_route_without_path_is_400(proxy_client):
    resp = proxy_client.get("/api/proxy")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing path query parameter."

"""Stateless request forwarding from the browser to the configured upstream.

The browser never sees the upstream credential: it is appended server-side,
and scrubbed from anything that flows back.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional
from urllib.parse import parse_qsl, quote

import httpx

from cryptodash.config.settings import API_KEY_PARAMS, Settings
from cryptodash.services.adapters.base import USER_AGENT
from cryptodash.services.errors import REDACTED, credential_hint, scrub

logger = logging.getLogger("cryptodash.proxy")

PATH_PARAM = "path"
DEFAULT_CONTENT_TYPE = "application/json; charset=utf-8"
CACHE_CONTROL = "s-maxage=30, stale-while-revalidate=120"
UPSTREAM_UNREACHABLE = "Failed to reach upstream."


@dataclass
class ProxyResponse:
    status_code: int
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def envelope(cls, status_code: int, error: str, detail: Optional[str] = None) -> "ProxyResponse":
        payload: Dict[str, Any] = {"error": error}
        if detail:
            payload["detail"] = detail
        return cls(
            status_code=status_code,
            body=json.dumps(payload).encode("utf-8"),
            headers={"content-type": DEFAULT_CONTENT_TYPE},
        )


def _normalize(path: str) -> str:
    return path if path.startswith("/") else f"/{path}"


def sub_path_from_query(value: Optional[str]) -> tuple[Optional[str], list[tuple[str, str]]]:
    """
    Sub-path carried in the ``path`` query parameter. A query string embedded
    in it (``/assets?limit=50``) is split off and returned as extra params.
    """
    if not value or not value.strip():
        return None, []
    raw = value.strip()
    embedded: list[tuple[str, str]] = []
    if "?" in raw:
        raw, qs = raw.split("?", 1)
        embedded = parse_qsl(qs, keep_blank_values=True)
    if not raw.strip("/"):
        return None, []
    return _normalize(raw), embedded


def sub_path_from_segments(route_path: Optional[str]) -> Optional[str]:
    """Sub-path carried as a multi-segment route; each segment is re-encoded."""
    if not route_path:
        return None
    segments = [s for s in route_path.split("/") if s]
    if not segments:
        return None
    return "/" + "/".join(quote(s, safe="") for s in segments)


def build_upstream_params(
    query_items: Iterable[tuple[str, str]],
    api_key: Optional[str],
    key_param: str,
) -> list[tuple[str, str]]:
    """
    Passthrough params minus the sub-path carrier, repeated keys preserved,
    with the server-held key appended when one is configured.
    """
    params = [(k, v) for k, v in query_items if k != PATH_PARAM]
    if api_key:
        params = [(k, v) for k, v in params if k != key_param]
        params.append((key_param, api_key))
    return params


def _scrub_bytes(body: bytes, secret: Optional[str]) -> bytes:
    if secret:
        return body.replace(secret.encode("utf-8"), REDACTED.encode("utf-8"))
    return body


async def forward(
    sub_path: Optional[str],
    query_items: Iterable[tuple[str, str]],
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> ProxyResponse:
    if not sub_path:
        return ProxyResponse.envelope(400, "Missing path query parameter.")

    api_key = settings.UPSTREAM_API_KEY
    key_param = API_KEY_PARAMS[settings.MARKET_PROVIDER]
    params = build_upstream_params(query_items, api_key, key_param)
    url = f"{settings.upstream_base_url.rstrip('/')}{_normalize(sub_path)}"
    headers = {"accept": "application/json", "user-agent": USER_AGENT}

    try:
        if client is not None:
            upstream = await client.get(url, params=params, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=settings.UPSTREAM_TIMEOUT_SECONDS) as own:
                upstream = await own.get(url, params=params, headers=headers)
        body = upstream.content
    except Exception as exc:
        detail = scrub(str(exc) or exc.__class__.__name__, api_key)
        logger.warning("proxy upstream unreachable | path=%s | err=%s", sub_path, exc.__class__.__name__)
        return ProxyResponse.envelope(502, UPSTREAM_UNREACHABLE, detail)

    logger.info("proxy forwarded | path=%s | status=%s", sub_path, upstream.status_code)

    if upstream.status_code == 401:
        error, detail = credential_hint(settings.MARKET_PROVIDER)
        return ProxyResponse.envelope(401, error, detail)

    return ProxyResponse(
        status_code=upstream.status_code,
        body=_scrub_bytes(body, api_key),
        headers={
            "content-type": upstream.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
            "cache-control": CACHE_CONTROL,
        },
    )

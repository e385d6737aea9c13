from __future__ import annotations

from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Request, Response

from cryptodash.config.settings import Settings, get_settings
from cryptodash.schemas.market import ErrorEnvelope
from cryptodash.services.proxy import PATH_PARAM, ProxyResponse, forward, sub_path_from_query, sub_path_from_segments


router = APIRouter(
    prefix="/api/proxy",
    tags=["proxy"],
    responses={
        400: {"model": ErrorEnvelope, "description": "Missing sub-path"},
        401: {"model": ErrorEnvelope, "description": "Upstream rejected the credential"},
        502: {"model": ErrorEnvelope, "description": "Upstream unreachable"},
    },
)


async def get_proxy_client() -> Optional[httpx.AsyncClient]:
    # None lets forward() open a short-lived client per request
    return None


def _to_response(result: ProxyResponse) -> Response:
    return Response(content=result.body, status_code=result.status_code, headers=result.headers)


@router.get("")
async def proxy_by_query(
    request: Request,
    settings: Settings = Depends(get_settings),
    client: Optional[httpx.AsyncClient] = Depends(get_proxy_client),
):
    """
    Sub-path in the `path` query parameter.
    Example: /api/proxy?path=/coins/markets&vs_currency=usd&per_page=50
    """
    sub_path, embedded = sub_path_from_query(request.query_params.get(PATH_PARAM))
    items = list(request.query_params.multi_items()) + embedded
    return _to_response(await forward(sub_path, items, settings, client=client))


@router.get("/{path:path}")
async def proxy_by_route(
    path: str,
    request: Request,
    settings: Settings = Depends(get_settings),
    client: Optional[httpx.AsyncClient] = Depends(get_proxy_client),
):
    """
    Sub-path as route segments.
    Example: /api/proxy/coins/markets?vs_currency=usd&per_page=50
    """
    sub_path = sub_path_from_segments(path)
    items = list(request.query_params.multi_items())
    return _to_response(await forward(sub_path, items, settings, client=client))

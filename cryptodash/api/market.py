from fastapi import APIRouter, Depends, Path, Query

from cryptodash.schemas.market import CoinDetail, CoinSummary, ErrorEnvelope, PricePoint
from cryptodash.services.adapters.base import MarketDataAdapter
from cryptodash.services.market_data import get_adapter


router = APIRouter(
    prefix="/market",
    tags=["market"],
    responses={
        429: {"model": ErrorEnvelope, "description": "Upstream rate limit"},
        502: {"model": ErrorEnvelope, "description": "Upstream unreachable"},
    },
)


@router.get("/coins", response_model=list[CoinSummary])
async def list_top_coins(adapter: MarketDataAdapter = Depends(get_adapter)):
    """
    Top coins by market cap, normalized from the active upstream.
    Example: /market/coins
    """
    return await adapter.fetch_top_coins()


@router.get("/coins/{coin_id}", response_model=CoinDetail)
async def get_coin_detail(
    coin_id: str = Path(..., min_length=1, description="Upstream coin identifier"),
    adapter: MarketDataAdapter = Depends(get_adapter),
):
    return await adapter.fetch_coin_detail(coin_id)


@router.get("/coins/{coin_id}/history", response_model=list[PricePoint])
async def get_coin_history(
    coin_id: str = Path(..., min_length=1),
    days: int = Query(7, ge=1, le=365, description="Window length in days"),
    adapter: MarketDataAdapter = Depends(get_adapter),
):
    """
    Price series for the last `days` days.
    Example: /market/coins/bitcoin/history?days=1
    """
    return await adapter.fetch_coin_history(coin_id, days)

"""Pydantic models for the normalized market-data contract."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class CoinSummary(BaseModel):
    """One row of the top-coins list."""

    id: str = Field(..., description="Upstream identifier, stable per coin")
    symbol: str
    name: str
    image_url: str = ""
    current_price_usd: float = Field(0.0, ge=0)
    market_cap_usd: float = Field(0.0, ge=0)
    market_cap_rank: int = Field(0, ge=0, description="0 when the upstream has no usable rank")
    total_volume_usd_24h: float = Field(0.0, ge=0)
    high_24h_usd: float = 0.0
    low_24h_usd: float = 0.0
    price_change_percent_24h: Optional[float] = Field(
        None, description="None when unknown; 0.0 is a real value"
    )
    ath_usd: float = Field(0.0, ge=0)


class CoinImages(BaseModel):
    large: Optional[str] = None
    small: Optional[str] = None
    thumb: Optional[str] = None


class MarketData(BaseModel):
    """USD figures for one coin; each one is absent when the upstream cannot supply it."""

    current_price_usd: Optional[float] = None
    price_change_percent_24h: Optional[float] = None
    ath_usd: Optional[float] = None
    high_24h_usd: Optional[float] = None
    low_24h_usd: Optional[float] = None
    total_volume_usd: Optional[float] = None
    market_cap_usd: Optional[float] = None


class CoinDetail(BaseModel):
    id: str
    symbol: str
    name: str
    images: CoinImages = Field(default_factory=CoinImages)
    market_data: MarketData = Field(default_factory=MarketData)


class PricePoint(BaseModel):
    time_millis: int = Field(..., description="Epoch milliseconds")
    price_usd: float


class ErrorEnvelope(BaseModel):
    error: str
    detail: Optional[str] = None

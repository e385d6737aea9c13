"""CoinCap v2 adapter.

CoinCap sends every number as a string and has no 24h high/low or ATH, so
those are zero-filled in the list and the detail view derives its day range
from a 1-day history fetched alongside the asset.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from cryptodash.schemas.market import CoinDetail, CoinImages, CoinSummary, MarketData, PricePoint
from cryptodash.services.adapters.base import MarketDataAdapter
from cryptodash.services.normalize import (
    build_series,
    non_negative,
    optional_non_negative,
    symbol_icon_url,
    to_finite,
    to_rank,
    to_text,
    unique_by_id,
)
from cryptodash.utils.time import history_window

ICON_TEMPLATE = "https://assets.coincap.io/assets/icons/{symbol}@2x.png"


def coin_icon(symbol: str) -> str:
    return symbol_icon_url(ICON_TEMPLATE, symbol)


def _rows(payload: Any) -> list:
    data = payload.get("data") if isinstance(payload, dict) else None
    return data if isinstance(data, list) else []


class CoinCapAdapter(MarketDataAdapter):
    provider = "coincap"

    def history_interval(self, days: int) -> Optional[str]:
        return "m15" if days <= 1 else "h2"

    async def fetch_top_coins(self) -> list[CoinSummary]:
        async with self._session() as client:
            payload = await self._get_json(client, "/assets", [("limit", self.config.page_size)])

        coins = [c for c in (self._summary(row) for row in _rows(payload)) if c is not None]
        return unique_by_id(coins, lambda c: c.id)

    def _summary(self, row: Any) -> Optional[CoinSummary]:
        if not isinstance(row, dict):
            self.logger.debug("skipping non-object asset row: %r", row)
            return None
        coin_id = to_text(row.get("id"))
        if not coin_id:
            self.logger.debug("skipping asset row without id")
            return None
        symbol = to_text(row.get("symbol"))
        return CoinSummary(
            id=coin_id,
            symbol=symbol,
            name=to_text(row.get("name"), default=symbol),
            image_url=coin_icon(symbol),
            current_price_usd=non_negative(row.get("priceUsd")),
            market_cap_usd=non_negative(row.get("marketCapUsd")),
            market_cap_rank=to_rank(row.get("rank")),
            total_volume_usd_24h=non_negative(row.get("volumeUsd24Hr")),
            high_24h_usd=0.0,
            low_24h_usd=0.0,
            price_change_percent_24h=to_finite(row.get("changePercent24Hr")),
            ath_usd=0.0,
        )

    async def fetch_coin_detail(self, coin_id: str) -> CoinDetail:
        async with self._session() as client:
            payload, high, low = await self._detail_with_day_range(
                client, f"/assets/{self._segment(coin_id)}", coin_id
            )

        asset = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(asset, dict):
            asset = {}
        symbol = to_text(asset.get("symbol"))
        icon = coin_icon(symbol) or None
        return CoinDetail(
            id=to_text(asset.get("id")) or coin_id,
            symbol=symbol,
            name=to_text(asset.get("name"), default=symbol),
            images=CoinImages(large=icon, small=icon, thumb=icon),
            market_data=MarketData(
                current_price_usd=optional_non_negative(asset.get("priceUsd")),
                price_change_percent_24h=to_finite(asset.get("changePercent24Hr")),
                ath_usd=None,
                high_24h_usd=high,
                low_24h_usd=low,
                total_volume_usd=optional_non_negative(asset.get("volumeUsd24Hr")),
                market_cap_usd=optional_non_negative(asset.get("marketCapUsd")),
            ),
        )

    async def _history(self, client: httpx.AsyncClient, coin_id: str, days: int) -> list[PricePoint]:
        start, end = history_window(days)
        payload = await self._get_json(
            client,
            f"/assets/{self._segment(coin_id)}/history",
            [("interval", self.history_interval(days)), ("start", start), ("end", end)],
        )
        return build_series(
            _rows(payload),
            time_of=lambda row: row.get("time"),
            price_of=lambda row: row.get("priceUsd"),
        )

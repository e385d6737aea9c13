"""CoinGecko v3 adapter. Closest upstream to the internal schema."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from cryptodash.schemas.market import CoinDetail, CoinImages, CoinSummary, MarketData, PricePoint
from cryptodash.services.adapters.base import MarketDataAdapter
from cryptodash.services.normalize import (
    build_series,
    first_finite,
    non_negative,
    optional_non_negative,
    to_finite,
    to_rank,
    to_text,
    unique_by_id,
    usd,
)
from cryptodash.utils.time import history_window

DETAIL_PARAMS = [
    ("localization", "false"),
    ("tickers", "false"),
    ("market_data", "true"),
    ("community_data", "false"),
    ("developer_data", "false"),
    ("sparkline", "false"),
]


def _images(raw: Any) -> CoinImages:
    if isinstance(raw, str):
        url = raw.strip() or None
        return CoinImages(large=url, small=url, thumb=url)
    if not isinstance(raw, dict):
        return CoinImages()
    sizes = {k: to_text(raw.get(k)) or None for k in ("large", "small", "thumb")}
    fallback = sizes["large"] or sizes["small"] or sizes["thumb"]
    return CoinImages(**{k: v or fallback for k, v in sizes.items()})


class CoinGeckoAdapter(MarketDataAdapter):
    provider = "coingecko"

    def history_interval(self, days: int) -> Optional[str]:
        return "5m" if days <= 1 else "hourly"

    async def fetch_top_coins(self) -> list[CoinSummary]:
        params = [
            ("vs_currency", "usd"),
            ("order", "market_cap_desc"),
            ("per_page", self.config.page_size),
            ("page", 1),
            ("sparkline", "false"),
        ]
        async with self._session() as client:
            payload = await self._get_json(client, "/coins/markets", params)

        rows = payload if isinstance(payload, list) else []
        coins = [c for c in (self._summary(row) for row in rows) if c is not None]
        return unique_by_id(coins, lambda c: c.id)

    def _summary(self, row: Any) -> Optional[CoinSummary]:
        if not isinstance(row, dict):
            self.logger.debug("skipping non-object market row: %r", row)
            return None
        coin_id = to_text(row.get("id"))
        if not coin_id:
            self.logger.debug("skipping market row without id")
            return None
        symbol = to_text(row.get("symbol"))
        return CoinSummary(
            id=coin_id,
            symbol=symbol,
            name=to_text(row.get("name"), default=symbol),
            image_url=to_text(row.get("image")),
            current_price_usd=non_negative(row.get("current_price")),
            market_cap_usd=non_negative(row.get("market_cap")),
            market_cap_rank=to_rank(row.get("market_cap_rank")),
            total_volume_usd_24h=non_negative(row.get("total_volume")),
            high_24h_usd=non_negative(row.get("high_24h")),
            low_24h_usd=non_negative(row.get("low_24h")),
            price_change_percent_24h=to_finite(row.get("price_change_percentage_24h")),
            ath_usd=non_negative(row.get("ath")),
        )

    async def fetch_coin_detail(self, coin_id: str) -> CoinDetail:
        async with self._session() as client:
            payload = await self._get_json(client, f"/coins/{self._segment(coin_id)}", DETAIL_PARAMS)

        coin = payload if isinstance(payload, dict) else {}
        md = coin.get("market_data") if isinstance(coin.get("market_data"), dict) else {}
        symbol = to_text(coin.get("symbol"))
        return CoinDetail(
            id=to_text(coin.get("id")) or coin_id,
            symbol=symbol,
            name=to_text(coin.get("name"), default=symbol),
            images=_images(coin.get("image")),
            market_data=MarketData(
                current_price_usd=optional_non_negative(usd(md, "current_price")),
                price_change_percent_24h=first_finite(
                    md.get("price_change_percentage_24h"),
                    usd(md, "price_change_percentage_24h_in_currency"),
                ),
                ath_usd=optional_non_negative(usd(md, "ath")),
                high_24h_usd=optional_non_negative(usd(md, "high_24h")),
                low_24h_usd=optional_non_negative(usd(md, "low_24h")),
                total_volume_usd=optional_non_negative(usd(md, "total_volume")),
                market_cap_usd=optional_non_negative(usd(md, "market_cap")),
            ),
        )

    async def _history(self, client: httpx.AsyncClient, coin_id: str, days: int) -> list[PricePoint]:
        start, end = history_window(days)
        payload = await self._get_json(
            client,
            f"/coins/{self._segment(coin_id)}/market_chart/range",
            [
                ("vs_currency", "usd"),
                ("from", start // 1000),
                ("to", end // 1000),
                ("interval", self.history_interval(days)),
            ],
        )
        prices = payload.get("prices") if isinstance(payload, dict) else None
        return build_series(
            prices if isinstance(prices, list) else [],
            time_of=lambda pair: pair[0],
            price_of=lambda pair: pair[1],
        )

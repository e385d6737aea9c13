"""CoinPaprika v1 adapter.

/tickers returns the whole universe in no guaranteed order, so the list is
ranked and cut to the page size here. USD figures live under quotes.USD.
"""

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
    rank_order,
    symbol_icon_url,
    to_finite,
    to_rank,
    to_text,
    unique_by_id,
)
from cryptodash.utils.time import history_window, millis_to_iso

ICON_TEMPLATE = "https://cdn.jsdelivr.net/gh/spothq/cryptocurrency-icons@master/128/color/{symbol}.png"


def coin_icon(symbol: str) -> str:
    return symbol_icon_url(ICON_TEMPLATE, symbol)


def _usd_quote(row: dict) -> dict:
    quotes = row.get("quotes")
    if not isinstance(quotes, dict):
        return {}
    quote = quotes.get("USD")
    return quote if isinstance(quote, dict) else {}


def _ath(row: dict, quote: dict) -> Optional[float]:
    return first_finite(quote.get("ath_price"), row.get("ath_price"))


class CoinPaprikaAdapter(MarketDataAdapter):
    provider = "coinpaprika"

    def history_interval(self, days: int) -> Optional[str]:
        return "15m" if days <= 1 else "1h"

    async def fetch_top_coins(self) -> list[CoinSummary]:
        async with self._session() as client:
            payload = await self._get_json(client, "/tickers", [("quotes", "USD")])

        rows = payload if isinstance(payload, list) else []
        coins = unique_by_id(
            [c for c in (self._summary(row) for row in rows) if c is not None],
            lambda c: c.id,
        )
        return rank_order(coins, lambda c: c.market_cap_rank, self.config.page_size)

    def _summary(self, row: Any) -> Optional[CoinSummary]:
        if not isinstance(row, dict):
            self.logger.debug("skipping non-object ticker row: %r", row)
            return None
        coin_id = to_text(row.get("id"))
        if not coin_id:
            self.logger.debug("skipping ticker row without id")
            return None
        quote = _usd_quote(row)
        symbol = to_text(row.get("symbol"))
        return CoinSummary(
            id=coin_id,
            symbol=symbol,
            name=to_text(row.get("name"), default=symbol),
            image_url=coin_icon(symbol),
            current_price_usd=non_negative(quote.get("price")),
            market_cap_usd=non_negative(quote.get("market_cap")),
            market_cap_rank=to_rank(row.get("rank")),
            total_volume_usd_24h=non_negative(quote.get("volume_24h")),
            high_24h_usd=0.0,
            low_24h_usd=0.0,
            price_change_percent_24h=to_finite(quote.get("percent_change_24h")),
            ath_usd=non_negative(_ath(row, quote)),
        )

    async def fetch_coin_detail(self, coin_id: str) -> CoinDetail:
        async with self._session() as client:
            payload, high, low = await self._detail_with_day_range(
                client, f"/tickers/{self._segment(coin_id)}", coin_id, [("quotes", "USD")]
            )

        row = payload if isinstance(payload, dict) else {}
        quote = _usd_quote(row)
        symbol = to_text(row.get("symbol"))
        icon = coin_icon(symbol) or None
        return CoinDetail(
            id=to_text(row.get("id")) or coin_id,
            symbol=symbol,
            name=to_text(row.get("name"), default=symbol),
            images=CoinImages(large=icon, small=icon, thumb=icon),
            market_data=MarketData(
                current_price_usd=optional_non_negative(quote.get("price")),
                price_change_percent_24h=to_finite(quote.get("percent_change_24h")),
                ath_usd=optional_non_negative(_ath(row, quote)),
                high_24h_usd=high,
                low_24h_usd=low,
                total_volume_usd=optional_non_negative(quote.get("volume_24h")),
                market_cap_usd=optional_non_negative(quote.get("market_cap")),
            ),
        )

    async def _history(self, client: httpx.AsyncClient, coin_id: str, days: int) -> list[PricePoint]:
        start, end = history_window(days)
        payload = await self._get_json(
            client,
            f"/tickers/{self._segment(coin_id)}/historical",
            [
                ("start", millis_to_iso(start)),
                ("end", millis_to_iso(end)),
                ("interval", self.history_interval(days)),
                ("quote", "usd"),
            ],
        )
        rows = payload if isinstance(payload, list) else []
        return build_series(
            rows,
            time_of=lambda row: row.get("timestamp"),
            price_of=lambda row: row.get("price"),
        )

"""Contract shared by the CoinGecko, CoinCap and CoinPaprika adapters."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence
from urllib.parse import quote

import httpx

from cryptodash.config.settings import AdapterConfig
from cryptodash.schemas.market import CoinDetail, CoinSummary, PricePoint
from cryptodash.services.errors import (
    INVALID_RESPONSE_MESSAGE,
    ApiFailure,
    classify_status,
    is_success,
    network_failure,
)
from cryptodash.services.normalize import high_low

Params = Sequence[tuple[str, Any]]

USER_AGENT = "crypto-dashboard/1.0"


class MarketDataAdapter(ABC):
    """
    One upstream, normalized.

    Subclasses implement the three public coroutines and must never let a
    malformed row or point escape as an exception; only transport and HTTP
    failures surface, always as ApiFailure.
    """

    provider: str = ""

    def __init__(self, config: AdapterConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        if config.provider != self.provider:
            raise ValueError(f"{type(self).__name__} cannot serve provider {config.provider!r}")
        self.config = config
        self._client = client
        self.logger = logging.getLogger(f"cryptodash.adapters.{self.provider}")

    # ----------------------------
    # public contract
    # ----------------------------
    @abstractmethod
    async def fetch_top_coins(self) -> list[CoinSummary]:
        ...

    @abstractmethod
    async def fetch_coin_detail(self, coin_id: str) -> CoinDetail:
        ...

    async def fetch_coin_history(self, coin_id: str, days: int = 7) -> list[PricePoint]:
        async with self._session() as client:
            return await self._history(client, coin_id, days)

    @abstractmethod
    def history_interval(self, days: int) -> Optional[str]:
        """Upstream interval token for a window of ``days``."""

    # ----------------------------
    # hooks
    # ----------------------------
    @abstractmethod
    async def _history(self, client: httpx.AsyncClient, coin_id: str, days: int) -> list[PricePoint]:
        ...

    # ----------------------------
    # transport
    # ----------------------------
    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.config.timeout) as client:
            yield client

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}{path}"

    def _params(self, params: Params) -> list[tuple[str, str]]:
        out = [(k, str(v)) for k, v in params]
        # in proxied mode the proxy owns the credential
        if self.config.api_key and not self.config.proxied:
            out.append((self.config.api_key_param, self.config.api_key))
        return out

    async def _get_json(self, client: httpx.AsyncClient, path: str, params: Params = ()) -> Any:
        url = self._url(path)
        try:
            response = await client.get(
                url,
                params=self._params(params),
                headers={"accept": "application/json", "user-agent": USER_AGENT},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self.logger.warning("upstream unreachable | path=%s | err=%s", path, exc.__class__.__name__)
            raise network_failure(exc, secret=self.config.api_key) from exc

        if not is_success(response.status_code):
            self.logger.warning("upstream error | path=%s | status=%s", path, response.status_code)
            raise classify_status(
                response.status_code,
                provider=self.provider,
                credential_hints=self.config.proxied,
            )

        try:
            return response.json()
        except ValueError as exc:
            self.logger.warning("upstream sent non-JSON body | path=%s", path)
            raise ApiFailure(INVALID_RESPONSE_MESSAGE, response.status_code) from exc

    @staticmethod
    def _segment(coin_id: str) -> str:
        return quote(str(coin_id).strip(), safe="")

    async def _detail_with_day_range(
        self,
        client: httpx.AsyncClient,
        detail_path: str,
        coin_id: str,
        params: Params = (),
    ) -> tuple[Any, Optional[float], Optional[float]]:
        """
        Fetch the detail payload and a 1-day history concurrently. Either
        failure fails the whole call and cancels the other request.
        Returns (payload, high_24h, low_24h).
        """
        tasks = [
            asyncio.ensure_future(self._get_json(client, detail_path, params)),
            asyncio.ensure_future(self._history(client, coin_id, 1)),
        ]
        try:
            payload, day = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        high, low = high_low(p.price_usd for p in day)
        return payload, high, low

"""Adapter selection. Exactly one upstream is active per deployment."""

from __future__ import annotations

from typing import Dict, Optional, Type

import httpx

from cryptodash.config.settings import AdapterConfig, get_settings
from cryptodash.services.adapters.base import MarketDataAdapter
from cryptodash.services.adapters.coincap import CoinCapAdapter
from cryptodash.services.adapters.coingecko import CoinGeckoAdapter
from cryptodash.services.adapters.coinpaprika import CoinPaprikaAdapter

ADAPTERS: Dict[str, Type[MarketDataAdapter]] = {
    "coingecko": CoinGeckoAdapter,
    "coincap": CoinCapAdapter,
    "coinpaprika": CoinPaprikaAdapter,
}


def build_adapter(config: AdapterConfig, client: Optional[httpx.AsyncClient] = None) -> MarketDataAdapter:
    return ADAPTERS[config.provider](config, client=client)


_adapter: MarketDataAdapter | None = None


def get_adapter() -> MarketDataAdapter:
    """Adapter for the configured provider (FastAPI dependency)."""
    global _adapter
    if _adapter is None:
        _adapter = build_adapter(get_settings().adapter_config())
    return _adapter


def reset_adapter() -> None:
    global _adapter
    _adapter = None

# cryptodash/config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional


PROVIDERS = ("coingecko", "coincap", "coinpaprika")
MODES = ("direct", "proxied")

UPSTREAM_BASE_URLS: Dict[str, str] = {
    "coingecko": "https://api.coingecko.com/api/v3",
    "coincap": "https://api.coincap.io/v2",
    "coinpaprika": "https://api.coinpaprika.com/v1",
}

# query parameter each upstream reads its credential from
API_KEY_PARAMS: Dict[str, str] = {
    "coingecko": "x_cg_demo_api_key",
    "coincap": "apiKey",
    "coinpaprika": "api_key",
}

API_KEY_ENV_VARS: Dict[str, str] = {
    "coingecko": "COINGECKO_API_KEY",
    "coincap": "COINCAP_API_KEY",
    "coinpaprika": "COINPAPRIKA_API_KEY",
}

PROVIDER_LABELS: Dict[str, str] = {
    "coingecko": "CoinGecko",
    "coincap": "CoinCap",
    "coinpaprika": "CoinPaprika",
}


def parse_choice(value: str | None, choices: tuple[str, ...], default: str, name: str) -> str:
    if value is None or value.strip() == "":
        return default
    v = value.strip().lower()
    if v not in choices:
        raise ValueError(f"Bad {name}: {value!r} (expected one of {', '.join(choices)})")
    return v


def parse_int(value: str | None, default: int) -> int:
    if value is None or value.strip() == "":
        return default
    return int(value)


def parse_float(value: str | None, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    return float(value)


def parse_optional(value: str | None) -> Optional[str]:
    if value is None:
        return None
    v = value.strip()
    return v or None


@dataclass(frozen=True)
class AdapterConfig:
    """Everything an adapter needs to reach its upstream."""

    provider: str
    mode: str = "direct"
    base_url: str = ""
    api_key: Optional[str] = None
    page_size: int = 50
    timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unknown market data provider: {self.provider}")
        if self.mode not in MODES:
            raise ValueError(f"Unknown adapter mode: {self.mode}")
        if self.page_size <= 0:
            raise ValueError("page_size must be positive")
        if not self.base_url:
            object.__setattr__(self, "base_url", UPSTREAM_BASE_URLS[self.provider])

    @property
    def api_key_param(self) -> str:
        return API_KEY_PARAMS[self.provider]

    @property
    def proxied(self) -> bool:
        return self.mode == "proxied"


@dataclass(frozen=True)
class Settings:
    MARKET_PROVIDER: str
    MARKET_MODE: str
    MARKET_BASE_URL: Optional[str]
    MARKET_PROXY_URL: str
    MARKET_PAGE_SIZE: int
    UPSTREAM_API_KEY: Optional[str]
    UPSTREAM_TIMEOUT_SECONDS: float
    LOG_LEVEL: str

    @staticmethod
    def from_env() -> "Settings":
        provider = parse_choice(os.getenv("MARKET_PROVIDER"), PROVIDERS, "coincap", "MARKET_PROVIDER")
        api_key = parse_optional(os.getenv("UPSTREAM_API_KEY")) or parse_optional(
            os.getenv(API_KEY_ENV_VARS[provider])
        )
        return Settings(
            MARKET_PROVIDER=provider,
            MARKET_MODE=parse_choice(os.getenv("MARKET_MODE"), MODES, "direct", "MARKET_MODE"),
            MARKET_BASE_URL=parse_optional(os.getenv("MARKET_BASE_URL")),
            MARKET_PROXY_URL=os.getenv("MARKET_PROXY_URL", "http://localhost:8000/api/proxy"),
            MARKET_PAGE_SIZE=parse_int(os.getenv("MARKET_PAGE_SIZE"), 50),
            UPSTREAM_API_KEY=api_key,
            UPSTREAM_TIMEOUT_SECONDS=parse_float(os.getenv("UPSTREAM_TIMEOUT_SECONDS"), 10.0),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def upstream_base_url(self) -> str:
        """Base the proxy forwards to (always the real upstream)."""
        if self.MARKET_MODE == "direct" and self.MARKET_BASE_URL:
            return self.MARKET_BASE_URL
        return UPSTREAM_BASE_URLS[self.MARKET_PROVIDER]

    def adapter_config(self) -> AdapterConfig:
        if self.MARKET_MODE == "proxied":
            base_url = self.MARKET_BASE_URL or self.MARKET_PROXY_URL
            api_key = None
        else:
            base_url = self.MARKET_BASE_URL or UPSTREAM_BASE_URLS[self.MARKET_PROVIDER]
            api_key = self.UPSTREAM_API_KEY
        return AdapterConfig(
            provider=self.MARKET_PROVIDER,
            mode=self.MARKET_MODE,
            base_url=base_url,
            api_key=api_key,
            page_size=self.MARKET_PAGE_SIZE,
            timeout=self.UPSTREAM_TIMEOUT_SECONDS,
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None

# cryptodash/api/health.py
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from cryptodash.config.settings import Settings, get_settings

router = APIRouter(tags=["health"])

APP_STARTED_AT = time.time()


def _now_meta() -> Dict[str, Any]:
    now_ts = time.time()
    now_dt = datetime.fromtimestamp(now_ts, tz=timezone.utc)
    return {
        "now_unix": int(now_ts),
        "now_iso": now_dt.isoformat().replace("+00:00", "Z"),
        "uptime_s": int(now_ts - APP_STARTED_AT),
    }


@router.get("/live")
async def live():
    return {"status": "ok"}


@router.get("/health")
async def health(settings: Settings = Depends(get_settings)):
    # never report the key itself, only whether one is configured
    return {
        "status": "ok",
        **_now_meta(),
        "provider": settings.MARKET_PROVIDER,
        "mode": settings.MARKET_MODE,
        "api_key_configured": settings.UPSTREAM_API_KEY is not None,
    }

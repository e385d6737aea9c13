from __future__ import annotations

from datetime import datetime, timezone

DAY_MS = 86_400_000


def utcnow() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def now_millis() -> int:
    return int(utcnow().timestamp() * 1000)


def millis_to_iso(ms: int) -> str:
    dt = datetime.fromtimestamp(ms // 1000, tz=timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def history_window(days: int, now_ms: int | None = None) -> tuple[int, int]:
    """
    Returns (start_ms, end_ms) covering the last ``days`` days up to now.
    """
    if days <= 0:
        raise ValueError(f"days must be positive, got {days}")
    end = now_millis() if now_ms is None else now_ms
    return end - days * DAY_MS, end

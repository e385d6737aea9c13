"""Shared coercion and derivation helpers used by all three adapters."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence, TypeVar

from cryptodash.schemas.market import PricePoint

logger = logging.getLogger("cryptodash.normalize")

T = TypeVar("T")


def to_finite(value: Any) -> Optional[float]:
    """
    Parse a finite float out of an upstream value.

    Numbers and numeric strings are accepted; anything else (None, "",
    booleans, NaN, +/-inf, garbage) gives None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = float(text)
        except ValueError:
            return None
    else:
        return None
    return parsed if math.isfinite(parsed) else None


def non_negative(value: Any) -> float:
    """Required USD figure: finite and >= 0, else 0."""
    parsed = to_finite(value)
    if parsed is None or parsed < 0:
        return 0.0
    return parsed


def optional_non_negative(value: Any) -> Optional[float]:
    parsed = to_finite(value)
    if parsed is None or parsed < 0:
        return None
    return parsed


def to_rank(value: Any) -> int:
    """Positive market-cap rank, or 0 when absent or unusable."""
    parsed = to_finite(value)
    if parsed is None or parsed < 1:
        return 0
    return int(parsed)


def first_finite(*values: Any) -> Optional[float]:
    """First value that coerces to a finite number (ATH fallback chain)."""
    for value in values:
        parsed = to_finite(value)
        if parsed is not None:
            return parsed
    return None


def to_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def usd(block: Any, key: str) -> Any:
    """Read ``block[key]["usd"]`` from a nested per-currency mapping."""
    if not isinstance(block, dict):
        return None
    inner = block.get(key)
    if isinstance(inner, dict):
        return inner.get("usd")
    return None


def symbol_icon_url(template: str, symbol: str) -> str:
    sym = (symbol or "").strip().lower()
    if not sym:
        return ""
    return template.format(symbol=sym)


def high_low(prices: Iterable[Any]) -> tuple[Optional[float], Optional[float]]:
    """(max, min) over the finite values, or (None, None) for an empty series."""
    finite = [p for p in (to_finite(v) for v in prices) if p is not None]
    if not finite:
        return None, None
    return max(finite), min(finite)


def parse_time_millis(value: Any) -> Optional[int]:
    """Epoch milliseconds from a number of ms or an ISO-8601 timestamp."""
    if isinstance(value, str):
        text = value.strip()
        if text and not _looks_numeric(text):
            try:
                dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return int(dt.timestamp() * 1000)
    parsed = to_finite(value)
    if parsed is None:
        return None
    return int(parsed)


def _looks_numeric(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def build_series(
    rows: Iterable[Any],
    time_of: Callable[[Any], Any],
    price_of: Callable[[Any], Any],
) -> list[PricePoint]:
    """
    Turn raw history rows into PricePoints, dropping any row whose time or
    price does not parse to a finite value.
    """
    points: list[PricePoint] = []
    dropped = 0
    for row in rows:
        try:
            ts = parse_time_millis(time_of(row))
            price = to_finite(price_of(row))
        except (KeyError, IndexError, TypeError, AttributeError):
            ts, price = None, None
        if ts is None or price is None:
            dropped += 1
            continue
        points.append(PricePoint(time_millis=ts, price_usd=price))
    if dropped:
        logger.debug("dropped %d unparseable history points", dropped)
    return points


def unique_by_id(items: Iterable[T], key: Callable[[T], str]) -> list[T]:
    """Keep the first item for each non-empty id, preserving order."""
    seen: set[str] = set()
    out: list[T] = []
    for item in items:
        ident = key(item)
        if not ident or ident in seen:
            continue
        seen.add(ident)
        out.append(item)
    return out


def rank_order(items: Sequence[T], rank: Callable[[T], int], limit: int) -> list[T]:
    """
    Stable ascending sort by rank with unknown ranks (0) last, truncated to
    ``limit``. Equal ranks keep response order.
    """
    ordered = sorted(items, key=lambda item: (rank(item) == 0, rank(item)))
    return ordered[:limit]

"""Utilities for working with market data bucket intervals."""
from __future__ import annotations

from typing import Dict, Iterable, Tuple

# Intervals accepted by the XRPL data API, widest first as shown in the picker.
DEFAULT_INTERVALS: Tuple[str, ...] = ("1d", "12h", "8h", "4h", "1h", "30m", "15m", "5m", "1m")

INTERVAL_SECONDS: Dict[str, float] = {
    "1m": 60.0,
    "5m": 300.0,
    "15m": 900.0,
    "30m": 1_800.0,
    "1h": 3_600.0,
    "4h": 14_400.0,
    "8h": 28_800.0,
    "12h": 43_200.0,
    "1d": 86_400.0,
}


def interval_to_seconds(interval: str) -> float:
    """Convert an interval tag such as ``"8h"`` to seconds."""
    interval = (interval or "").strip().lower()
    if not interval:
        raise ValueError("interval must not be empty")
    if interval in INTERVAL_SECONDS:
        return INTERVAL_SECONDS[interval]
    try:
        value = float(interval[:-1])
        unit = interval[-1]
    except (ValueError, IndexError) as exc:
        raise ValueError(f"Unsupported interval: {interval}") from exc
    if value <= 0:
        raise ValueError(f"Unsupported interval: {interval}")
    if unit == "m":
        return value * 60.0
    if unit == "h":
        return value * 3_600.0
    if unit == "d":
        return value * 86_400.0
    raise ValueError(f"Unsupported interval: {interval}")


def normalise_interval(interval: str, allowed: Iterable[str] = DEFAULT_INTERVALS) -> str:
    """Return the canonical interval tag or raise ``ValueError``."""

    tag = (interval or "").strip().lower()
    allowed_tags = [str(item).strip().lower() for item in allowed]
    if tag not in allowed_tags:
        raise ValueError(f"Unsupported interval: {interval!r} (expected one of {', '.join(allowed_tags)})")
    return tag

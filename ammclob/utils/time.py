"""Time helper utilities."""
from __future__ import annotations

import math

import pandas as pd


def timestamp_to_ms(value: str) -> int | None:
    """Parse a bucket timestamp string into epoch milliseconds (UTC).

    Naive timestamps are read as UTC. Returns ``None`` when the value cannot
    be parsed.
    """

    if not value:
        return None
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError):
        return None
    if ts is pd.NaT:
        return None
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    seconds = ts.timestamp()
    if not math.isfinite(seconds):
        return None
    return int(round(seconds * 1000))

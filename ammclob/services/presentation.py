"""Map derived candles and volumes into a chart-agnostic payload."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..utils.logging import get_logger
from ..utils.time import timestamp_to_ms
from .aligner import AlignedRow
from .buckets import Source
from .deriver import (
    UNDEFINED_RATIO,
    Candle,
    ComparisonMode,
    PricePoint,
    VolumeBar,
    coerce_comparison,
    coerce_source,
    derive_candles,
    derive_price_series,
    derive_volumes,
)

LOGGER = get_logger(__name__)

Point = List[Any]


@dataclass
class ChartPayload:
    candles: List[Point]
    volumes: List[List[Point]]
    price_lines: Optional[Dict[str, List[Point]]] = None
    combined_volume: Optional[List[Point]] = None
    scale: Optional[Dict[str, float]] = None
    flagged: List[str] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "candles": self.candles,
            # Single-sided sources carry one bar list; blended carries both.
            "volumes": self.volumes[0] if len(self.volumes) == 1 else self.volumes,
            "scale": self.scale,
            "flagged": list(self.flagged),
            "meta": dict(self.meta),
        }
        if self.price_lines is not None:
            payload["price_lines"] = self.price_lines
            payload["combined_volume"] = self.combined_volume
        return payload


def _candle_value(value: Any) -> Optional[float]:
    if value is None or value is UNDEFINED_RATIO:
        return None
    return float(value)


def _present_candles(
    candles: Sequence[Candle], times: Dict[str, int], *, skip_undefined: bool
) -> tuple[List[Point], List[str]]:
    points: List[Point] = []
    flagged: List[str] = []
    for candle in candles:
        time_ms = times.get(candle.timestamp)
        if time_ms is None:
            continue
        if not candle.is_defined:
            flagged.append(candle.timestamp)
            if skip_undefined:
                continue
        points.append([time_ms, [_candle_value(value) for value in candle.values]])
    return points, flagged


def _present_bars(bars: Sequence[VolumeBar], times: Dict[str, int], component: str) -> List[Point]:
    return [
        [times[bar.timestamp], getattr(bar, component)]
        for bar in bars
        if bar.timestamp in times
    ]


def _present_line(points: Sequence[PricePoint], times: Dict[str, int]) -> List[Point]:
    return [[times[point.timestamp], point.value] for point in points if point.timestamp in times]


def _scale(candles: Sequence[Point]) -> Optional[Dict[str, float]]:
    prices = [
        value
        for _, (open_price, _high, _low, close_price) in candles
        for value in (open_price, close_price)
        if value is not None
    ]
    if not prices:
        return None
    return {
        "y_min": min(prices),
        "y_max": max(prices),
        "x_min": min(point[0] for point in candles),
    }


def build_chart_payload(
    rows: Sequence[AlignedRow],
    source: Source | str,
    comparison: ComparisonMode | str = ComparisonMode.RAW_PAIR,
    *,
    include_price_lines: bool = False,
    skip_undefined: bool = True,
    volume_field: str = "base",
    meta: Optional[Dict[str, Any]] = None,
) -> ChartPayload:
    """Derive the selected view from ``rows`` and shape it for a chart widget.

    Timestamps are converted to epoch milliseconds here; rows whose timestamp
    cannot be parsed are left out of every series. Candles with an undefined
    ratio or a missing side are reported in ``flagged`` and either dropped
    (``skip_undefined``) or emitted with ``None`` in the affected slots.
    """

    selected = coerce_source(source)
    mode = coerce_comparison(comparison)

    times: Dict[str, int] = {}
    for row in rows:
        time_ms = timestamp_to_ms(row.timestamp)
        if time_ms is None:
            LOGGER.warning("Skipping bucket with unparseable timestamp %r", row.timestamp)
            continue
        times[row.timestamp] = time_ms

    candles = derive_candles(rows, selected, mode)
    candle_points, flagged = _present_candles(candles, times, skip_undefined=skip_undefined)

    bars = derive_volumes(rows, selected, volume_field=volume_field)
    if selected is Source.AMM:
        volumes = [_present_bars(bars, times, "amm")]
    elif selected is Source.CLOB:
        volumes = [_present_bars(bars, times, "clob")]
    else:
        volumes = [_present_bars(bars, times, "amm"), _present_bars(bars, times, "clob")]

    payload = ChartPayload(
        candles=candle_points,
        volumes=volumes,
        scale=_scale(candle_points),
        flagged=flagged,
        meta={
            "source": selected.value,
            "comparison": mode.value,
            "rows": len(rows),
            "partial_rows": sum(1 for row in rows if row.partial),
            **(meta or {}),
        },
    )

    if include_price_lines:
        series = derive_price_series(rows, volume_field=volume_field)
        payload.price_lines = {
            "amm": _present_line(series.amm, times),
            "clob": _present_line(series.clob, times),
        }
        payload.combined_volume = [
            [times[bar.timestamp], bar.total] for bar in series.combined_volume if bar.timestamp in times
        ]
    return payload

"""Turn aligned rows into the candle, volume and price fields a view needs."""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from .aligner import AlignedRow
from .buckets import Bucket, Source

OHLC_FIELDS: Tuple[str, ...] = ("open", "high", "low", "close")


class ComparisonMode(str, Enum):
    RAW_PAIR = "RAW_PAIR"
    DEVIATION = "DEVIATION"


class _UndefinedRatio:
    """Marker for a deviation whose CLOB divisor is zero or missing."""

    _instance: Optional["_UndefinedRatio"] = None

    def __new__(cls) -> "_UndefinedRatio":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED_RATIO"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "UNDEFINED_RATIO"


UNDEFINED_RATIO = _UndefinedRatio()

CandleValue = Union[float, _UndefinedRatio, None]


def coerce_source(value: Source | str) -> Source:
    if isinstance(value, Source):
        return value
    if isinstance(value, str):
        tag = value.strip().upper()
        if tag == "ALL":
            return Source.BLENDED
        try:
            return Source(tag)
        except ValueError:
            pass
    raise ValueError(f"Unknown source selector: {value!r}")


def coerce_comparison(value: ComparisonMode | str) -> ComparisonMode:
    if isinstance(value, ComparisonMode):
        return value
    if isinstance(value, str):
        try:
            return ComparisonMode(value.strip().upper())
        except ValueError:
            pass
    raise ValueError(f"Unknown comparison mode: {value!r}")


@dataclass(frozen=True, slots=True)
class Candle:
    timestamp: str
    open: CandleValue
    high: CandleValue
    low: CandleValue
    close: CandleValue
    partial: bool = False

    @property
    def values(self) -> Tuple[CandleValue, CandleValue, CandleValue, CandleValue]:
        return (self.open, self.high, self.low, self.close)

    @property
    def is_defined(self) -> bool:
        return all(value is not None and value is not UNDEFINED_RATIO for value in self.values)


@dataclass(frozen=True, slots=True)
class VolumeBar:
    """Stacked ``(amm, clob)`` volume for one row."""

    timestamp: str
    amm: float
    clob: float

    @property
    def values(self) -> Tuple[float, float]:
        return (self.amm, self.clob)

    @property
    def total(self) -> float:
        return self.amm + self.clob


@dataclass(frozen=True, slots=True)
class PricePoint:
    timestamp: str
    value: float


@dataclass(frozen=True, slots=True)
class PriceSeries:
    amm: List[PricePoint]
    clob: List[PricePoint]
    combined_volume: List[VolumeBar]


def _ratio(numerator: float, denominator: Optional[float]) -> CandleValue:
    if denominator is None or denominator == 0 or not math.isfinite(denominator):
        return UNDEFINED_RATIO
    value = numerator / denominator
    if not math.isfinite(value):
        return UNDEFINED_RATIO
    return value


def _deviation_candle(row: AlignedRow) -> Candle:
    clob = row.clob
    values = [
        _ratio(getattr(row.amm, name), getattr(clob, name) if clob is not None else None)
        for name in OHLC_FIELDS
    ]
    return Candle(row.timestamp, *values, partial=clob is None)


def _source_candle(row: AlignedRow, source: Source) -> Candle:
    bucket: Optional[Bucket] = row.side(source)
    if bucket is None:
        return Candle(row.timestamp, None, None, None, None, partial=True)
    return Candle(row.timestamp, bucket.open, bucket.high, bucket.low, bucket.close)


def derive_candles(
    rows: Sequence[AlignedRow],
    source: Source | str,
    comparison: ComparisonMode | str = ComparisonMode.RAW_PAIR,
) -> List[Candle]:
    """Build one candle per row.

    ``DEVIATION`` ignores ``source`` and divides each AMM field by the CLOB
    field of the same row. A selected side without a bucket produces a
    partial candle with empty OHLC values.
    """

    selected = coerce_source(source)
    mode = coerce_comparison(comparison)
    if mode is ComparisonMode.DEVIATION:
        return [_deviation_candle(row) for row in rows]
    return [_source_candle(row, selected) for row in rows]


def derive_volumes(
    rows: Sequence[AlignedRow],
    source: Source | str,
    *,
    volume_field: str = "base",
) -> List[VolumeBar]:
    selected = coerce_source(source)
    bars: List[VolumeBar] = []
    for row in rows:
        amm_volume = row.volume(Source.AMM, volume_field)
        clob_volume = row.volume(Source.CLOB, volume_field)
        if selected is Source.AMM:
            clob_volume = 0.0
        elif selected is Source.CLOB:
            amm_volume = 0.0
        bars.append(VolumeBar(row.timestamp, amm_volume, clob_volume))
    return bars


def derive_price_series(rows: Sequence[AlignedRow], *, volume_field: str = "base") -> PriceSeries:
    """Close-price lines for both venues plus their summed volume."""

    amm_points = [PricePoint(row.timestamp, row.amm.close) for row in rows]
    clob_points = [PricePoint(row.timestamp, row.clob.close) for row in rows if row.clob is not None]
    combined = derive_volumes(rows, Source.BLENDED, volume_field=volume_field)
    return PriceSeries(amm=amm_points, clob=clob_points, combined_volume=combined)

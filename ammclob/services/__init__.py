"""Service layer exports for the AMM/CLOB chart backend."""

from .aligner import AlignedRow, NO_VOLUME, align
from .buckets import (
    AssetRef,
    Bucket,
    BucketSeries,
    Source,
    SourceFilter,
    TradingPair,
    parse_bucket,
)
from .deriver import (
    Candle,
    ComparisonMode,
    PricePoint,
    PriceSeries,
    UNDEFINED_RATIO,
    VolumeBar,
    derive_candles,
    derive_price_series,
    derive_volumes,
)
from .errors import (
    MarketDataError,
    NO_DATA_MESSAGE,
    NotReadyError,
    RefreshError,
    SourceEmpty,
    TransportFailure,
)
from .presentation import ChartPayload, build_chart_payload
from .refresh import RefreshController, RefreshState, Snapshot

__all__ = [
    "AlignedRow",
    "NO_VOLUME",
    "align",
    "AssetRef",
    "Bucket",
    "BucketSeries",
    "Source",
    "SourceFilter",
    "TradingPair",
    "parse_bucket",
    "Candle",
    "ComparisonMode",
    "PricePoint",
    "PriceSeries",
    "UNDEFINED_RATIO",
    "VolumeBar",
    "derive_candles",
    "derive_price_series",
    "derive_volumes",
    "MarketDataError",
    "NO_DATA_MESSAGE",
    "NotReadyError",
    "RefreshError",
    "SourceEmpty",
    "TransportFailure",
    "ChartPayload",
    "build_chart_payload",
    "RefreshController",
    "RefreshState",
    "Snapshot",
]

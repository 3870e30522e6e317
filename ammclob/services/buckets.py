"""Bucketed market data series for the AMM, CLOB and blended sources."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Mapping, MutableMapping, Optional, Tuple

from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

NATIVE_CODE = "XRP"


class Source(str, Enum):
    AMM = "AMM"
    CLOB = "CLOB"
    BLENDED = "BLENDED"


class SourceFilter(str, Enum):
    """Trade filter sent to the market data API."""

    AMM_ONLY = "AMM_ONLY"
    CLOB_ONLY = "CLOB_ONLY"
    ALL = "ALL"


SOURCE_FILTERS: Dict[Source, SourceFilter] = {
    Source.AMM: SourceFilter.AMM_ONLY,
    Source.CLOB: SourceFilter.CLOB_ONLY,
    Source.BLENDED: SourceFilter.ALL,
}


@dataclass(frozen=True, slots=True)
class AssetRef:
    """Either the native asset (``issuer is None``) or an issued currency."""

    code: str = NATIVE_CODE
    issuer: Optional[str] = None

    @property
    def is_native(self) -> bool:
        return self.issuer is None

    @classmethod
    def native(cls) -> "AssetRef":
        return cls()

    @classmethod
    def parse(cls, value: str) -> "AssetRef":
        """Parse the API form: ``XRP`` or ``<issuer>_<code>``."""

        text = (value or "").strip()
        if not text:
            raise ValueError("asset must not be empty")
        if text.upper() == NATIVE_CODE:
            return cls.native()
        issuer, sep, code = text.partition("_")
        if not sep or not issuer or not code:
            raise ValueError(f"Invalid asset {value!r}: expected 'XRP' or '<issuer>_<code>'")
        return cls(code=code, issuer=issuer)

    def to_api(self) -> str:
        if self.is_native:
            return NATIVE_CODE
        return f"{self.issuer}_{self.code}"


@dataclass(frozen=True, slots=True)
class TradingPair:
    base: AssetRef
    counter: AssetRef
    base_name: Optional[str] = field(default=None, compare=False)
    counter_name: Optional[str] = field(default=None, compare=False)

    @classmethod
    def parse(
        cls,
        base: str,
        counter: str,
        *,
        base_name: Optional[str] = None,
        counter_name: Optional[str] = None,
    ) -> "TradingPair":
        return cls(
            base=AssetRef.parse(base),
            counter=AssetRef.parse(counter),
            base_name=base_name,
            counter_name=counter_name,
        )

    @property
    def label(self) -> str:
        base = self.base_name or (NATIVE_CODE if self.base.is_native else self.base.code)
        counter = self.counter_name or (NATIVE_CODE if self.counter.is_native else self.counter.code)
        return f"{counter}/{base}"

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {
            "base": self.base.to_api(),
            "counter": self.counter.to_api(),
            "label": self.label,
        }


@dataclass(frozen=True, slots=True)
class Bucket:
    """One interval's trade summary for one source."""

    timestamp: str
    open: float
    high: float
    low: float
    close: float
    base_volume: float = 0.0
    counter_volume: float = 0.0
    exchange_count: int = 0

    def volume(self, field_name: str = "base") -> float:
        return self.counter_volume if field_name == "counter" else self.base_volume


def _num(row: Mapping[str, object], *keys: str) -> float | None:
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        try:
            number = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        return number if math.isfinite(number) else None
    return None


def parse_bucket(row: Bucket | Mapping[str, object]) -> Bucket | None:
    """Convert a raw API row into a :class:`Bucket`.

    :class:`Bucket` instances are returned unchanged. Rows without a timestamp or with a non-numeric OHLC value are rejected.
    Volumes and exchange counts default to zero and never go negative.
    """

    if isinstance(row, Bucket):
        return row
    if not isinstance(row, Mapping):
        return None
    timestamp = row.get("timestamp")
    if timestamp is None or not str(timestamp).strip():
        return None

    prices = [_num(row, key) for key in ("open", "high", "low", "close")]
    if any(value is None for value in prices):
        return None
    open_price, high_price, low_price, close_price = prices  # type: ignore[misc]

    base_volume = _num(row, "base_volume", "baseVolume") or 0.0
    counter_volume = _num(row, "counter_volume", "counterVolume") or 0.0
    exchanges = _num(row, "exchanges", "exchange_count", "exchangeCount") or 0.0

    return Bucket(
        timestamp=str(timestamp),
        open=float(open_price),
        high=float(high_price),
        low=float(low_price),
        close=float(close_price),
        base_volume=max(0.0, base_volume),
        counter_volume=max(0.0, counter_volume),
        exchange_count=max(0, int(exchanges)),
    )


class BucketSeries:
    """Immutable ordered buckets for one source with lookup by timestamp."""

    __slots__ = ("source", "_buckets", "_index", "duplicates")

    def __init__(
        self,
        source: Source,
        buckets: Iterable[Bucket] = (),
        *,
        duplicates: Iterable[str] = (),
    ) -> None:
        self.source = Source(source)
        by_time: MutableMapping[str, Bucket] = {}
        seen_twice: List[str] = list(duplicates)
        for bucket in buckets:
            if bucket.timestamp in by_time:
                seen_twice.append(bucket.timestamp)
            # Last occurrence wins but keeps the slot of the first one.
            by_time[bucket.timestamp] = bucket
        self._buckets: Tuple[Bucket, ...] = tuple(by_time.values())
        self._index: Dict[str, Bucket] = dict(by_time)
        self.duplicates: Tuple[str, ...] = tuple(seen_twice)
        if self.duplicates:
            LOGGER.debug(
                "Discarded %s duplicate %s buckets: %s",
                len(self.duplicates),
                self.source.value,
                ", ".join(sorted(set(self.duplicates))),
            )

    @classmethod
    def from_rows(
        cls,
        source: Source,
        rows: Iterable[Bucket | Mapping[str, object]],
        *,
        descending: bool = False,
    ) -> "BucketSeries":
        """Build a series from buckets or API rows, normalising to ascending order.

        ``descending`` states the order the rows were requested in; such rows
        are reversed after de-duplication so the result is always ascending.
        """

        parsed = [bucket for bucket in (parse_bucket(row) for row in rows) if bucket is not None]
        series = cls(source, parsed)
        if descending:
            return cls(source, reversed(series._buckets), duplicates=series.duplicates)
        return series

    def __len__(self) -> int:
        return len(self._buckets)

    def __iter__(self) -> Iterator[Bucket]:
        return iter(self._buckets)

    def __getitem__(self, position: int) -> Bucket:
        return self._buckets[position]

    def __contains__(self, timestamp: object) -> bool:
        return timestamp in self._index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BucketSeries):
            return NotImplemented
        return self.source == other.source and self._buckets == other._buckets

    def __hash__(self) -> int:
        return hash((self.source, self._buckets))

    def __repr__(self) -> str:
        return f"BucketSeries(source={self.source.value}, buckets={len(self._buckets)})"

    @property
    def buckets(self) -> Tuple[Bucket, ...]:
        return self._buckets

    @property
    def timestamps(self) -> List[str]:
        return [bucket.timestamp for bucket in self._buckets]

    def get(self, timestamp: str) -> Bucket | None:
        return self._index.get(timestamp)

"""Join the AMM, CLOB and blended series on their bucket timestamps."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .buckets import Bucket, BucketSeries, Source

NO_VOLUME = 0.0


@dataclass(frozen=True, slots=True)
class AlignedRow:
    """Buckets from every source that share one AMM timestamp.

    A side without a bucket for the timestamp is ``None`` and the row is
    marked ``partial``. Volume accessors read such a side as ``NO_VOLUME``.
    """

    timestamp: str
    amm: Bucket
    clob: Optional[Bucket]
    blended: Optional[Bucket]

    @property
    def partial(self) -> bool:
        return self.clob is None or self.blended is None

    @property
    def missing(self) -> Tuple[str, ...]:
        sides = []
        if self.clob is None:
            sides.append(Source.CLOB.value)
        if self.blended is None:
            sides.append(Source.BLENDED.value)
        return tuple(sides)

    def side(self, source: Source) -> Optional[Bucket]:
        if source is Source.AMM:
            return self.amm
        if source is Source.CLOB:
            return self.clob
        if source is Source.BLENDED:
            return self.blended
        raise ValueError(f"Unknown source: {source!r}")

    def volume(self, source: Source, field_name: str = "base") -> float:
        bucket = self.side(source)
        if bucket is None:
            return NO_VOLUME
        return bucket.volume(field_name)


def align(amm: BucketSeries, clob: BucketSeries, blended: BucketSeries) -> List[AlignedRow]:
    """Return one row per AMM bucket, in AMM order.

    The AMM series is the reference grid: CLOB and blended buckets with
    timestamps the AMM series lacks are ignored.
    """

    return [
        AlignedRow(
            timestamp=bucket.timestamp,
            amm=bucket,
            clob=clob.get(bucket.timestamp),
            blended=blended.get(bucket.timestamp),
        )
        for bucket in amm
    ]

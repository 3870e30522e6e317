"""Fetch lifecycle for the three market data series of one pair/interval.

Every change of the request key ``(pair, interval)`` mints a new fetch
generation. The three fetches of a generation run concurrently and are merged
only once all of them have settled, and only while that generation is still
the current one. Results of superseded generations are dropped without being
parsed, so a slow stale response can never replace a fresher snapshot.
"""
from __future__ import annotations

import asyncio
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

from ..config import Settings
from ..utils.logging import get_logger
from ..utils.timeframes import DEFAULT_INTERVALS, interval_to_seconds, normalise_interval
from .aligner import AlignedRow, align
from .buckets import SOURCE_FILTERS, Bucket, BucketSeries, Source, SourceFilter, TradingPair
from .deriver import ComparisonMode, coerce_comparison, coerce_source
from .errors import NotReadyError, RefreshError, SourceEmpty, TransportFailure
from .presentation import ChartPayload, build_chart_payload

LOGGER = get_logger(__name__)

FETCH_ORDER: Tuple[Source, ...] = (Source.AMM, Source.CLOB, Source.BLENDED)
DEFAULT_LIMIT = 321

BucketRow = Union[Bucket, Mapping[str, Any]]


class MarketDataSource(Protocol):
    """Returns buckets (or raw API rows) for one venue filter or raises once per call."""

    async def fetch_buckets(
        self,
        pair: TradingPair,
        interval: str,
        source_filter: SourceFilter,
        descending: bool,
        limit: int,
    ) -> Sequence[BucketRow]:
        ...


class RefreshState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class RequestKey:
    pair: TradingPair
    interval: str


@dataclass(frozen=True)
class Snapshot:
    """Aligned series produced by one completed generation."""

    generation: int
    pair: TradingPair
    interval: str
    amm: BucketSeries
    clob: BucketSeries
    blended: BucketSeries
    rows: Tuple[AlignedRow, ...]


Listener = Callable[["RefreshController"], None]


class RefreshController:
    """Owns the current generation, its in-flight fetch and the visible snapshot."""

    def __init__(
        self,
        source: MarketDataSource,
        *,
        descending: bool = True,
        limit: int = DEFAULT_LIMIT,
        intervals: Iterable[str] = DEFAULT_INTERVALS,
        volume_field: str = "base",
        skip_undefined: bool = True,
        view_source: Source | str = Source.BLENDED,
        comparison: ComparisonMode | str = ComparisonMode.RAW_PAIR,
    ) -> None:
        self._source = source
        self._descending = bool(descending)
        self._limit = max(1, int(limit))
        self._intervals = tuple(intervals)
        self._volume_field = volume_field
        self._skip_undefined = skip_undefined
        self.view_source = coerce_source(view_source)
        self.comparison = coerce_comparison(comparison)

        self.state = RefreshState.IDLE
        self.generation = 0
        self.key: Optional[RequestKey] = None
        self.snapshot: Optional[Snapshot] = None
        self.error: Optional[RefreshError] = None
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []

    @classmethod
    def from_settings(cls, settings: Settings, source: MarketDataSource) -> "RefreshController":
        return cls(
            source,
            descending=settings.data.descending,
            limit=settings.data.limit,
            intervals=settings.data.intervals,
            volume_field=settings.data.volume_field,
            skip_undefined=settings.view.skip_undefined,
            view_source=settings.view.source,
            comparison=settings.view.comparison,
        )

    # -- subscriptions -------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_state(self, state: RefreshState) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(self)

    # -- request key ---------------------------------------------------
    def select(self, pair: TradingPair, interval: str) -> int:
        """Point the controller at ``(pair, interval)`` and return its generation.

        Re-selecting the key that is already fetching or ready is a no-op.
        Must be called from a running event loop.
        """

        key = RequestKey(pair, normalise_interval(interval, self._intervals))
        if key == self.key and self.state in (RefreshState.FETCHING, RefreshState.READY):
            return self.generation
        self.key = key
        return self._start()

    def refresh(self) -> int:
        """Fetch the current key again under a new generation."""

        if self.key is None:
            raise RuntimeError("No pair/interval selected")
        return self._start()

    def _start(self) -> int:
        assert self.key is not None
        loop = asyncio.get_running_loop()
        self.generation += 1
        generation = self.generation
        key = self.key
        # Nothing from an earlier key stays visible while the new one loads.
        self.snapshot = None
        self.error = None
        LOGGER.info(
            "Generation %s: fetching %s %s",
            generation,
            key.pair.label,
            key.interval,
        )
        self._task = loop.create_task(self._run(generation, key))
        self._set_state(RefreshState.FETCHING)
        return generation

    # -- fetch and merge -----------------------------------------------
    async def _fetch(self, key: RequestKey, source: Source) -> Sequence[BucketRow]:
        return await self._source.fetch_buckets(
            key.pair,
            key.interval,
            SOURCE_FILTERS[source],
            self._descending,
            self._limit,
        )

    async def _run(self, generation: int, key: RequestKey) -> None:
        results = await asyncio.gather(
            *(self._fetch(key, source) for source in FETCH_ORDER),
            return_exceptions=True,
        )
        self._merge(generation, key, dict(zip(FETCH_ORDER, results)))

    def _merge(self, generation: int, key: RequestKey, results: Dict[Source, Any]) -> None:
        if generation != self.generation:
            LOGGER.debug(
                "Discarding stale generation %s for %s %s (current %s)",
                generation,
                key.pair.label,
                key.interval,
                self.generation,
            )
            return

        for source in FETCH_ORDER:
            outcome = results[source]
            if isinstance(outcome, BaseException):
                self._fail(generation, TransportFailure(source.value, outcome))
                return

        series = {
            source: BucketSeries.from_rows(source, results[source], descending=self._descending)
            for source in FETCH_ORDER
        }
        empty = [source.value for source in FETCH_ORDER if len(series[source]) == 0]
        if empty:
            self._fail(generation, SourceEmpty(empty))
            return

        rows = tuple(align(series[Source.AMM], series[Source.CLOB], series[Source.BLENDED]))
        self.snapshot = Snapshot(
            generation=generation,
            pair=key.pair,
            interval=key.interval,
            amm=series[Source.AMM],
            clob=series[Source.CLOB],
            blended=series[Source.BLENDED],
            rows=rows,
        )
        LOGGER.info(
            "Generation %s ready: %s rows (%s partial) for %s %s",
            generation,
            len(rows),
            sum(1 for row in rows if row.partial),
            key.pair.label,
            key.interval,
        )
        self._set_state(RefreshState.READY)

    def _fail(self, generation: int, error: RefreshError) -> None:
        LOGGER.warning("Generation %s failed: %s", generation, error)
        self.snapshot = None
        self.error = error
        self._set_state(RefreshState.FAILED)

    async def wait(self) -> RefreshState:
        """Wait until the current generation settles, following newer ones."""

        while self._task is not None:
            task = self._task
            await asyncio.wait({task})
            if task is self._task:
                if not task.cancelled():
                    task.result()
                break
        return self.state

    async def close(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    # -- views -----------------------------------------------------------
    def set_view(
        self,
        source: Source | str | None = None,
        comparison: ComparisonMode | str | None = None,
    ) -> None:
        """Change the view mode; never triggers a fetch."""

        if source is not None:
            self.view_source = coerce_source(source)
        if comparison is not None:
            self.comparison = coerce_comparison(comparison)

    def view(
        self,
        source: Source | str | None = None,
        comparison: ComparisonMode | str | None = None,
        *,
        include_price_lines: bool = False,
    ) -> ChartPayload:
        """Render the current snapshot.

        ``source`` and ``comparison`` apply to this call only; use
        :meth:`set_view` to change the stored view mode.
        """

        selected = self.view_source if source is None else coerce_source(source)
        mode = self.comparison if comparison is None else coerce_comparison(comparison)
        snapshot = self.snapshot
        if self.state is not RefreshState.READY or snapshot is None:
            raise NotReadyError(f"No chart data available (state={self.state.value})")
        return build_chart_payload(
            snapshot.rows,
            selected,
            mode,
            include_price_lines=include_price_lines,
            skip_undefined=self._skip_undefined,
            volume_field=self._volume_field,
            meta={
                "generation": snapshot.generation,
                "pair": snapshot.pair.as_dict(),
                "interval": snapshot.interval,
                "interval_ms": int(interval_to_seconds(snapshot.interval) * 1000),
            },
        )

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "generation": self.generation,
            "pair": self.key.pair.as_dict() if self.key else None,
            "interval": self.key.interval if self.key else None,
            "error": str(self.error) if self.error else None,
            "rows": len(self.snapshot.rows) if self.snapshot else 0,
        }

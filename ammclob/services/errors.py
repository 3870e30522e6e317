"""Error types shared by the refresh pipeline."""
from __future__ import annotations

from typing import Sequence

NO_DATA_MESSAGE = "no data for this pair/interval"


class MarketDataError(RuntimeError):
    """Raised by a market data source when a fetch cannot be completed."""


class RefreshError(RuntimeError):
    """Base class for failures recorded by the refresh controller."""


class SourceEmpty(RefreshError):
    """One or more fetched series came back without rows."""

    def __init__(self, sources: Sequence[str]) -> None:
        self.sources = tuple(sources)
        super().__init__(f"{NO_DATA_MESSAGE} (empty: {', '.join(self.sources)})")


class TransportFailure(RefreshError):
    """A fetch for the current generation failed."""

    def __init__(self, source: str, cause: BaseException) -> None:
        self.source = source
        self.cause = cause
        super().__init__(f"{source} fetch failed: {cause}")


class NotReadyError(RuntimeError):
    """A view was requested while no complete snapshot is available."""

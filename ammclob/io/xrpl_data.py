"""REST client for the XRPL data API market data endpoint."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx

from ..services.buckets import SourceFilter, TradingPair
from ..services.errors import MarketDataError
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

XRPL_DATA_BASE = "https://data.xrplf.org"
DEFAULT_LIMIT = 321

Row = Mapping[str, Any]


def build_params(interval: str, source_filter: SourceFilter, descending: bool, limit: int) -> Dict[str, str]:
    params = {
        "interval": interval,
        "limit": str(int(limit)),
        "descending": "true" if descending else "false",
    }
    source_filter = SourceFilter(source_filter)
    if source_filter is SourceFilter.AMM_ONLY:
        params["only_amm"] = "true"
    elif source_filter is SourceFilter.CLOB_ONLY:
        params["exclude_amm"] = "true"
    return params


class XrplDataClient:
    """Fetch interval buckets for a pair, optionally filtered by venue."""

    def __init__(
        self,
        base_url: str = XRPL_DATA_BASE,
        *,
        timeout: float = 15.0,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._factory = client_factory or (lambda: httpx.AsyncClient(timeout=timeout))

    def market_data_url(self, pair: TradingPair) -> str:
        return f"{self.base_url}/v1/iou/market_data/{pair.base.to_api()}/{pair.counter.to_api()}"

    async def fetch_buckets(
        self,
        pair: TradingPair,
        interval: str,
        source_filter: SourceFilter = SourceFilter.ALL,
        descending: bool = True,
        limit: int = DEFAULT_LIMIT,
    ) -> List[Row]:
        source_filter = SourceFilter(source_filter)
        url = self.market_data_url(pair)
        params = build_params(interval, source_filter, descending, limit)
        LOGGER.debug("GET %s params=%s", url, params)
        try:
            async with self._factory() as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise MarketDataError(
                f"{source_filter.value} request for {pair.label} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise MarketDataError(f"{source_filter.value} request for {pair.label} failed: {exc}") from exc
        except ValueError as exc:
            raise MarketDataError(f"{source_filter.value} response for {pair.label} is not JSON") from exc
        if not isinstance(data, list):
            raise MarketDataError(
                f"{source_filter.value} response for {pair.label} is not a list: {type(data).__name__}"
            )
        return data

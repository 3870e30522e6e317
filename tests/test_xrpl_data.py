"""Tests for the XRPL data API client."""
from __future__ import annotations

import asyncio
from typing import Any, Callable, List

import httpx
import pytest

from ammclob.io.xrpl_data import XrplDataClient, build_params
from ammclob.services.buckets import SourceFilter, TradingPair
from ammclob.services.errors import MarketDataError

PAIR = TradingPair.parse("XRP", "rhub8VRN55s94qWKDv6jmDy1pUykJzF3wq_USD")


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> XrplDataClient:
    transport = httpx.MockTransport(handler)
    return XrplDataClient(
        "https://data.example.org/",
        client_factory=lambda: httpx.AsyncClient(transport=transport),
    )


def test_fetch_builds_market_data_request() -> None:
    seen: List[httpx.Request] = []
    rows = [{"timestamp": "2024-01-01T00:00:00Z", "open": 1, "high": 1, "low": 1, "close": 1}]

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=rows)

    client = _client(handler)
    result = asyncio.run(client.fetch_buckets(PAIR, "8h", SourceFilter.AMM_ONLY, True, 321))

    assert result == rows
    request = seen[0]
    assert request.url.path == "/v1/iou/market_data/XRP/rhub8VRN55s94qWKDv6jmDy1pUykJzF3wq_USD"
    assert request.url.params["interval"] == "8h"
    assert request.url.params["limit"] == "321"
    assert request.url.params["descending"] == "true"
    assert request.url.params["only_amm"] == "true"
    assert "exclude_amm" not in request.url.params


@pytest.mark.parametrize(
    "source_filter, present, absent",
    [
        (SourceFilter.AMM_ONLY, "only_amm", "exclude_amm"),
        (SourceFilter.CLOB_ONLY, "exclude_amm", "only_amm"),
    ],
)
def test_source_filter_params(source_filter: SourceFilter, present: str, absent: str) -> None:
    params = build_params("1h", source_filter, False, 50)
    assert params[present] == "true"
    assert absent not in params
    assert params["descending"] == "false"


def test_all_filter_sends_no_venue_flag() -> None:
    params = build_params("1h", SourceFilter.ALL, True, 10)
    assert set(params) == {"interval", "limit", "descending"}


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, json={"error": "unexpected"}),
        httpx.Response(200, content=b"<html>"),
    ],
)
def test_bad_responses_raise_market_data_error(response: httpx.Response) -> None:
    client = _client(lambda request: response)
    with pytest.raises(MarketDataError):
        asyncio.run(client.fetch_buckets(PAIR, "8h", SourceFilter.ALL, True, 10))


def test_transport_errors_raise_market_data_error() -> None:
    def handler(request: httpx.Request) -> Any:
        raise httpx.ConnectError("unreachable", request=request)

    client = _client(handler)
    with pytest.raises(MarketDataError):
        asyncio.run(client.fetch_buckets(PAIR, "8h", SourceFilter.CLOB_ONLY, True, 10))

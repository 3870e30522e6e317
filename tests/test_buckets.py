"""Tests for bucket parsing and series indexing."""
from __future__ import annotations

import pytest

from ammclob.services.buckets import (
    AssetRef,
    Bucket,
    BucketSeries,
    Source,
    TradingPair,
    parse_bucket,
)


def _row(ts: str, close: float = 1.0, **extra: object) -> dict:
    row = {
        "timestamp": ts,
        "open": close,
        "high": close + 1,
        "low": close - 0.5,
        "close": close,
        "base_volume": 10.0,
        "counter_volume": 20.0,
        "exchanges": 3,
    }
    row.update(extra)
    return row


def test_parse_bucket_reads_wire_fields() -> None:
    bucket = parse_bucket(_row("2024-01-01T00:00:00Z", close=2.5))
    assert bucket == Bucket(
        timestamp="2024-01-01T00:00:00Z",
        open=2.5,
        high=3.5,
        low=2.0,
        close=2.5,
        base_volume=10.0,
        counter_volume=20.0,
        exchange_count=3,
    )


def test_parse_bucket_accepts_numeric_strings_and_defaults_volume() -> None:
    bucket = parse_bucket({"timestamp": "A", "open": "1", "high": "2", "low": "0.5", "close": "1.5"})
    assert bucket is not None
    assert bucket.close == 1.5
    assert bucket.base_volume == 0.0
    assert bucket.counter_volume == 0.0
    assert bucket.exchange_count == 0


@pytest.mark.parametrize(
    "row",
    [
        {"open": 1, "high": 1, "low": 1, "close": 1},
        {"timestamp": "", "open": 1, "high": 1, "low": 1, "close": 1},
        {"timestamp": "A", "open": "x", "high": 1, "low": 1, "close": 1},
        {"timestamp": "A", "open": 1, "high": 1, "low": 1},
        {"timestamp": "A", "open": float("nan"), "high": 1, "low": 1, "close": 1},
    ],
)
def test_parse_bucket_rejects_malformed_rows(row: dict) -> None:
    assert parse_bucket(row) is None


def test_negative_volume_is_clamped() -> None:
    bucket = parse_bucket(_row("A", base_volume=-4.0, exchanges=-2))
    assert bucket is not None
    assert bucket.base_volume == 0.0
    assert bucket.exchange_count == 0


def test_duplicate_timestamps_keep_last_bucket() -> None:
    series = BucketSeries.from_rows(
        Source.AMM,
        [_row("A", close=1.0), _row("B", close=2.0), _row("A", close=3.0)],
    )
    assert series.timestamps == ["A", "B"]
    assert series.get("A").close == 3.0
    assert series.duplicates == ("A",)
    assert len(series) == 2


def test_descending_rows_are_normalised_to_ascending() -> None:
    rows = [_row("C", close=3.0), _row("B", close=2.0), _row("A", close=1.0)]
    series = BucketSeries.from_rows(Source.CLOB, rows, descending=True)
    assert series.timestamps == ["A", "B", "C"]
    assert [bucket.close for bucket in series] == [1.0, 2.0, 3.0]
    assert "B" in series
    assert series.get("Z") is None


def test_malformed_rows_are_skipped_in_series() -> None:
    series = BucketSeries.from_rows(Source.BLENDED, [_row("A"), {"timestamp": "B"}])
    assert series.timestamps == ["A"]


def test_bucket_instances_pass_through_unchanged() -> None:
    bucket = Bucket("B", 2.0, 3.0, 1.0, 2.5, base_volume=4.0)
    assert parse_bucket(bucket) is bucket
    series = BucketSeries.from_rows(Source.AMM, [bucket, _row("A")], descending=True)
    assert series.timestamps == ["A", "B"]
    assert series.get("B") is bucket


def test_asset_ref_round_trips_api_form() -> None:
    native = AssetRef.parse("xrp")
    issued = AssetRef.parse("rhub8VRN55s94qWKDv6jmDy1pUykJzF3wq_USD")
    assert native.is_native
    assert native.to_api() == "XRP"
    assert issued.issuer == "rhub8VRN55s94qWKDv6jmDy1pUykJzF3wq"
    assert issued.code == "USD"
    assert issued.to_api() == "rhub8VRN55s94qWKDv6jmDy1pUykJzF3wq_USD"


@pytest.mark.parametrize("value", ["", "USD", "_USD", "rIssuer_"])
def test_asset_ref_rejects_invalid_values(value: str) -> None:
    with pytest.raises(ValueError):
        AssetRef.parse(value)


def test_trading_pair_identity_ignores_display_names() -> None:
    first = TradingPair.parse("XRP", "rIssuer_USD", counter_name="Issuer USD")
    second = TradingPair.parse("XRP", "rIssuer_USD")
    other = TradingPair.parse("XRP", "rIssuer_EUR")
    assert first == second
    assert hash(first) == hash(second)
    assert first != other
    assert first.label == "Issuer USD/XRP"
    assert second.label == "USD/XRP"

"""Tests for settings loading."""
from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ammclob.config import Settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("AMMCLOB_INTERVAL", "AMMCLOB_BASE_URL", "AMMCLOB_CONFIG"):
        monkeypatch.delenv(name, raising=False)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_match_market_data_api() -> None:
    settings = Settings()
    assert settings.data.base_url == "https://data.xrplf.org"
    assert settings.data.limit == 321
    assert settings.data.descending is True
    assert settings.data.default_interval == "8h"
    assert settings.data.intervals == ["1d", "12h", "8h", "4h", "1h", "30m", "15m", "5m", "1m"]
    assert settings.view.source == "BLENDED"


def test_load_settings_from_yaml(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "settings.yaml",
        """
data:
  limit: 100
  default_interval: 1h
view:
  comparison: DEVIATION
pairs:
  - base: XRP
    counter: rIssuer_USD
    counter_name: Issuer USD
""",
    )
    settings = load_settings(path)
    assert settings.data.limit == 100
    assert settings.data.default_interval == "1h"
    assert settings.view.comparison == "DEVIATION"
    assert settings.pairs[0].counter == "rIssuer_USD"


def test_environment_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path / "settings.yaml", "data:\n  limit: 50\n")
    monkeypatch.setenv("AMMCLOB_INTERVAL", "4h")
    monkeypatch.setenv("AMMCLOB_BASE_URL", "https://mirror.example.org")
    settings = load_settings(path)
    assert settings.data.default_interval == "4h"
    assert settings.data.base_url == "https://mirror.example.org"
    assert settings.data.limit == 50


def test_unknown_default_interval_is_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "settings.yaml", "data:\n  default_interval: 2h\n")
    with pytest.raises(ValidationError):
        load_settings(path)


def test_invalid_view_mode_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings.model_validate({"view": {"source": "DEX"}})


def test_explicit_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.yaml")

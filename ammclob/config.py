"""Configuration loading utilities for the AMM/CLOB chart backend."""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from .utils.timeframes import DEFAULT_INTERVALS, normalise_interval

DEFAULT_SETTINGS_PATH = Path("configs/settings.yaml")


class DataSettings(BaseModel):
    base_url: str = "https://data.xrplf.org"
    limit: int = Field(321, ge=1, le=1000)
    descending: bool = True
    timeout_seconds: float = Field(15.0, gt=0.0)
    default_interval: str = "8h"
    intervals: List[str] = Field(default_factory=lambda: list(DEFAULT_INTERVALS))
    volume_field: str = Field("base", pattern="^(base|counter)$")

    @field_validator("intervals")
    @classmethod
    def _intervals_not_empty(cls, value: List[str]) -> List[str]:
        cleaned = [item.strip().lower() for item in value if item and item.strip()]
        if not cleaned:
            raise ValueError("at least one interval must be configured")
        return cleaned

    @model_validator(mode="after")
    def _default_interval_known(self) -> "DataSettings":
        self.default_interval = normalise_interval(self.default_interval, self.intervals)
        return self


class ViewSettings(BaseModel):
    source: str = Field("BLENDED", pattern="^(AMM|CLOB|BLENDED|ALL)$")
    comparison: str = Field("RAW_PAIR", pattern="^(RAW_PAIR|DEVIATION)$")
    skip_undefined: bool = True
    price_lines: bool = False


class PairSettings(BaseModel):
    base: str
    counter: str
    base_name: Optional[str] = None
    counter_name: Optional[str] = None


class UISettings(BaseModel):
    trend_up: str = "#30D158"
    trend_down: str = "#FF453A"


class Settings(BaseModel):
    data: DataSettings = Field(default_factory=DataSettings)
    view: ViewSettings = Field(default_factory=ViewSettings)
    pairs: List[PairSettings] = Field(default_factory=list)
    ui: UISettings = Field(default_factory=UISettings)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(path: Path | str | None = None) -> Settings:
    """Load application settings from YAML and environment variables.

    An explicit ``path`` must exist. Without one, ``configs/settings.yaml`` is
    used when present and built-in defaults otherwise.
    """
    load_dotenv()
    if path is None:
        env_path = os.getenv("AMMCLOB_CONFIG")
        path = Path(env_path) if env_path else None
    if path is None:
        raw = _load_yaml(DEFAULT_SETTINGS_PATH) if DEFAULT_SETTINGS_PATH.exists() else {}
    else:
        raw = _load_yaml(Path(path))

    # allow overriding via environment variables
    data = dict(raw.get("data") or {})
    interval = os.getenv("AMMCLOB_INTERVAL")
    base_url = os.getenv("AMMCLOB_BASE_URL")
    if interval:
        data["default_interval"] = interval
    if base_url:
        data["base_url"] = base_url
    if data:
        raw = {**raw, "data": data}
    return Settings.model_validate(raw)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()

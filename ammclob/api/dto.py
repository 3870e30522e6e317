"""DTOs for FastAPI endpoints."""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel


class SelectionRequest(BaseModel):
    base: str
    counter: str
    interval: Optional[str] = None
    base_name: Optional[str] = None
    counter_name: Optional[str] = None
    wait: bool = True


class StatusResponse(BaseModel):
    state: str
    generation: int
    pair: Optional[Dict[str, Optional[str]]] = None
    interval: Optional[str] = None
    error: Optional[str] = None
    rows: int = 0


class PairsResponse(BaseModel):
    pairs: List[Dict[str, Optional[str]]]
    intervals: List[str]
    default_interval: str

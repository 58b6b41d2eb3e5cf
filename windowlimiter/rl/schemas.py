from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class Algorithm(str, Enum):
    fixed_window = "fixed_window"
    sliding_log = "sliding_log"
    sliding_window = "sliding_window"


class RecordRequest(BaseModel):
    algorithm: Algorithm
    resource: str
    subject: str
    window_sec: Optional[int] = None


class CountResponse(BaseModel):
    algorithm: Algorithm
    resource: str
    subject: str
    window_sec: Optional[int] = None
    count: int


class CheckRequest(BaseModel):
    algorithm: Algorithm
    resource: str
    subject: str
    limit: int = Field(ge=0)
    window_sec: Optional[int] = None


class CheckDecision(BaseModel):
    allowed: bool
    count: int
    remaining: int
    limit: int
    reset_at: int
    retry_after_ms: int
    algorithm: str
    headers: Dict[str, str] = Field(default_factory=dict)

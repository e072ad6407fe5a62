from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from newapi_stats.config import MIN_REFRESH_INTERVAL_SECONDS
from newapi_stats.stats.models import Stats


class ConfigUpdate(BaseModel):
    base_url: Optional[str] = None
    user_id: Optional[int] = None
    session_cookie: Optional[str] = None
    conversion_factor: Optional[float] = Field(default=None, gt=0)
    exchange_rate: Optional[float] = Field(default=None, gt=0)
    refresh_interval_seconds: Optional[int] = Field(default=None, ge=MIN_REFRESH_INTERVAL_SECONDS)


class ConfigResponse(BaseModel):
    base_url: str
    user_id: int
    has_session_cookie: bool
    conversion_factor: float
    exchange_rate: float
    refresh_interval_seconds: float
    configured: bool


class StatsResponse(BaseModel):
    configured: bool
    stats: Optional[Stats] = None
    error: Optional[str] = None
    last_attempt_at: Optional[datetime] = None


class StatusResponse(BaseModel):
    configured: bool
    running: bool
    busy: bool
    refresh_interval_seconds: float
    has_stats: bool
    last_attempt_at: Optional[datetime] = None
    last_error: Optional[str] = None

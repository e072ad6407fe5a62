from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


class NewAPIConfig(BaseModel):
    """Everything the fetch pipeline needs to know about one account."""

    model_config = ConfigDict(frozen=True)

    base_url: str = ""
    user_id: int = 0
    session_cookie: str = Field(default="", repr=False)
    conversion_factor: float = Field(default=500000.0, gt=0)
    exchange_rate: float = Field(default=7.2, gt=0)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.user_id and self.session_cookie)

    def replace(self, **changes) -> "NewAPIConfig":
        """Return a validated copy with `changes` applied."""
        return NewAPIConfig.model_validate({**self.model_dump(), **changes})


# --- Wire shapes ---


class ApiResponse(BaseModel, Generic[T]):
    success: bool = False
    data: T | None = None
    message: str | None = None


class UserProfile(BaseModel):
    id: int | None = None
    username: str | None = None
    access_token: str | None = None


class Balance(BaseModel):
    quota: int | None = None


class LogItem(BaseModel):
    quota: int | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    created_time: int | None = None
    model: str | None = None


class LogPage(BaseModel):
    items: list[LogItem] | None = None
    total: int | None = None
    page: int | None = None
    page_size: int | None = None


# --- Aggregation ---


class TimeWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: int
    end: int


class UsageAggregate(BaseModel):
    """Running totals over a sequence of log pages."""

    model_config = ConfigDict(frozen=True)

    consumption: int = 0
    requests: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @classmethod
    def from_items(cls, items: list[LogItem]) -> "UsageAggregate":
        return cls(
            consumption=sum(item.quota or 0 for item in items),
            requests=len(items),
            prompt_tokens=sum(item.prompt_tokens or 0 for item in items),
            completion_tokens=sum(item.completion_tokens or 0 for item in items),
        )

    def __add__(self, other: "UsageAggregate") -> "UsageAggregate":
        if not isinstance(other, UsageAggregate):
            return NotImplemented
        return UsageAggregate(
            consumption=self.consumption + other.consumption,
            requests=self.requests + other.requests,
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
        )


# --- Snapshot ---


class Stats(BaseModel):
    """One complete, internally consistent statistics snapshot."""

    model_config = ConfigDict(frozen=True)

    # Raw figures (quota units / counts)
    balance: int
    today_consumption: int
    total_consumption: int
    today_requests: int
    total_requests: int
    today_prompt_tokens: int
    today_completion_tokens: int
    total_prompt_tokens: int
    total_completion_tokens: int

    # USD
    balance_usd: float
    today_consumption_usd: float
    total_consumption_usd: float
    total_amount_usd: float  # balance + total consumption

    # CNY
    balance_cny: float
    today_consumption_cny: float
    total_consumption_cny: float
    total_amount_cny: float

    # Percentages
    usage_percentage: float  # total consumption / (balance + total consumption)
    remaining_percentage: float  # balance / (balance + total consumption)
    today_usage_percentage: float  # today consumption / balance

    last_updated: datetime

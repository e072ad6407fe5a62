from pydantic import Field
from pydantic_settings import BaseSettings

from newapi_stats.stats.models import NewAPIConfig

# Refresh period choices offered to the display layer (seconds)
REFRESH_INTERVAL_PRESETS = (30, 60, 300, 600, 1800)
MIN_REFRESH_INTERVAL_SECONDS = 10


class Settings(BaseSettings):
    # Site
    base_url: str = "https://instcopilot-api.com"
    user_id: int = 0
    session_cookie: str | None = None  # Value of the "session" cookie, without the "session=" prefix

    # Conversion
    conversion_factor: float = 500000.0  # quota units per 1 USD
    exchange_rate: float = 7.2  # USD -> CNY

    # Polling
    refresh_interval_seconds: int = Field(default=300, ge=MIN_REFRESH_INTERVAL_SECONDS)
    request_timeout_seconds: float = 30.0

    # HTTP API
    host: str = "127.0.0.1"
    port: int = 8000

    # Observability
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_prefix": "NEWAPI_", "extra": "ignore"}

    def to_api_config(self) -> NewAPIConfig:
        return NewAPIConfig(
            base_url=self.base_url,
            user_id=self.user_id,
            session_cookie=self.session_cookie or "",
            conversion_factor=self.conversion_factor,
            exchange_rate=self.exchange_rate,
        )


settings = Settings()

from functools import lru_cache
from typing import Any

from pydantic import AnyUrl, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.domain.models import MS_PER_HOUR, ViewportConfig


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        return [item for item in (part.strip() for part in value.split(",")) if item]
    return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    hyperliquid_base_url: AnyUrl = Field(
        default="https://api.hyperliquid.xyz",
        description="Base URL for the Hyperliquid public API",
    )
    hyperliquid_info_path: str = Field(
        default="/info",
        description="Relative path for the Hyperliquid info endpoint",
    )
    hyperliquid_max_history_points: int = Field(
        default=500,
        description="Maximum number of hourly points Hyperliquid returns per funding history request",
        ge=1,
    )
    binance_base_url: AnyUrl = Field(
        default="https://fapi.binance.com",
        description="Base URL for the Binance USD-M futures API",
    )
    binance_funding_rate_path: str = Field(default="/fapi/v1/fundingRate")
    binance_premium_index_path: str = Field(default="/fapi/v1/premiumIndex")
    binance_funding_info_path: str = Field(default="/fapi/v1/fundingInfo")
    binance_exchange_info_path: str = Field(default="/fapi/v1/exchangeInfo")
    binance_history_limit: int = Field(
        default=1000,
        description="Number of funding records requested per Binance history call",
        ge=1,
        le=1000,
    )
    binance_allowed_quotes: list[str] | str = Field(
        default_factory=lambda: ["USDT"],
        description="Quote assets eligible for cross-venue pairing (list or comma-separated string)",
    )
    http_timeout_seconds: float = Field(10.0, description="Timeout applied to venue requests", gt=0)
    http_user_agent: str = Field(
        default="Mozilla/5.0 (compatible; FundingSpreadBackend/1.0)",
        description="User-Agent header sent to venues that reject anonymous clients",
    )
    http_retry_attempts: int = Field(
        default=5,
        description="Number of retries after a venue answers 429 Too Many Requests",
        ge=0,
    )
    http_retry_base_seconds: float = Field(
        default=0.5,
        description="Base delay for exponential backoff when Retry-After is absent",
        ge=0,
    )
    default_secondary_period_hours: float = Field(
        default=8.0,
        description="Settlement period assumed for the secondary venue when none is supplied",
        gt=0,
    )
    history_default_days: int = Field(default=7, ge=1)
    history_lookback_days: list[int] | str = Field(
        default_factory=lambda: [1, 7, 30],
        description="Lookback lengths (days) offered to chart clients",
    )
    history_cache_size: int = Field(
        default=64,
        description="Maximum number of aligned series kept in memory",
        ge=1,
    )
    history_cache_ttl_seconds: float | None = Field(
        default=300.0,
        description="Seconds an aligned series stays fresh in the cache (unset to disable expiry)",
    )
    viewport_min_window_hours: float = Field(default=3.0, gt=0)
    viewport_button_zoom_in: float = Field(default=0.75, gt=0, lt=1)
    viewport_button_zoom_out: float = Field(default=1.25, gt=1)
    viewport_wheel_zoom_in: float = Field(default=0.82, gt=0, lt=1)
    viewport_wheel_zoom_out: float = Field(default=1.18, gt=1)
    viewport_wheel_pan_ratio: float = Field(default=0.1, gt=0, le=1)
    export_history_days: int = Field(default=30, ge=1)
    export_output_dir: str = Field(
        default="../data/funding-history",
        description="Directory where exported CSV files are written",
    )
    export_pair_delay_seconds: float = Field(default=0.25, ge=0)
    export_retry_delay_seconds: float = Field(default=3.0, ge=0)

    @field_validator("binance_allowed_quotes", mode="before")
    @classmethod
    def _parse_allowed_quotes(cls, value: Any) -> list[str]:
        parsed = _split_csv(value)
        if parsed in (None, []):
            return ["USDT"]
        if isinstance(parsed, (list, tuple, set)):
            return [str(item).strip().upper() for item in parsed if str(item).strip()]
        raise ValueError(
            "BINANCE_ALLOWED_QUOTES must be provided as a list or comma-separated string"
        )

    @field_validator("history_lookback_days", mode="before")
    @classmethod
    def _parse_lookback_days(cls, value: Any) -> list[int]:
        parsed = _split_csv(value)
        if parsed in (None, []):
            return [1, 7, 30]
        if not isinstance(parsed, (list, tuple)):
            raise ValueError(
                "HISTORY_LOOKBACK_DAYS must be provided as a list or comma-separated string"
            )
        days: list[int] = []
        for item in parsed:
            try:
                day = int(item)
            except (TypeError, ValueError) as exc:
                raise ValueError("HISTORY_LOOKBACK_DAYS entries must be integers") from exc
            if day <= 0:
                raise ValueError("HISTORY_LOOKBACK_DAYS entries must be positive")
            days.append(day)
        return sorted(set(days))

    @field_validator("history_cache_ttl_seconds", mode="before")
    @classmethod
    def _parse_cache_ttl(cls, value: Any) -> float | None:
        if value in (None, ""):
            return None
        ttl = float(value)
        if ttl <= 0:
            return None
        return ttl

    @model_validator(mode="after")
    def _check_default_lookback(self) -> "Settings":
        if self.history_default_days not in self.history_lookback_days:
            raise ValueError("HISTORY_DEFAULT_DAYS must be one of HISTORY_LOOKBACK_DAYS")
        return self

    def viewport_config(self) -> ViewportConfig:
        return ViewportConfig(
            min_window_ms=int(self.viewport_min_window_hours * MS_PER_HOUR),
            button_zoom_in=self.viewport_button_zoom_in,
            button_zoom_out=self.viewport_button_zoom_out,
            wheel_zoom_in=self.viewport_wheel_zoom_in,
            wheel_zoom_out=self.viewport_wheel_zoom_out,
            wheel_pan_ratio=self.viewport_wheel_pan_ratio,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

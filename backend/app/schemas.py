from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.config import get_settings
from app.services.history_service import HistoryQuery


class HistoryRequest(BaseModel):
    symbol: str = Field(min_length=1, description="Primary venue coin, e.g. BTC")
    secondary_symbol: str | None = Field(
        default=None, description="Secondary venue contract, e.g. BTCUSDT"
    )
    days: int = Field(
        default_factory=lambda: get_settings().history_default_days,
        ge=1,
        le=365,
        description="Lookback length in days",
    )
    secondary_period_hours: float | None = Field(
        default=None, description="Settlement period of the secondary venue in hours"
    )

    @field_validator("symbol", mode="before")
    @classmethod
    def _strip_symbol(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("secondary_symbol", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("secondary_period_hours", mode="after")
    @classmethod
    def _drop_non_positive_period(cls, value: float | None) -> float | None:
        if value is None or value <= 0:
            return None
        return value

    def to_query(self) -> HistoryQuery:
        return HistoryQuery(
            symbol=self.symbol,
            secondary_symbol=self.secondary_symbol,
            days=self.days,
            secondary_period_hours=self.secondary_period_hours,
        )


class HistoryPoint(BaseModel):
    time: int
    primary: float | None = None
    secondary: float | None = None
    spread: float | None = None

    model_config = {"from_attributes": True}


class HistoryResponse(BaseModel):
    dataset: list[HistoryPoint]


class LiveFundingRequest(BaseModel):
    hyper_symbols: list[str] = Field(default_factory=list)
    binance_symbols: list[str] = Field(default_factory=list)


class LiveFundingResponse(BaseModel):
    hyperliquid: dict[str, float] = Field(default_factory=dict)
    binance: dict[str, float] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class Window(BaseModel):
    start: int
    end: int

    model_config = {"from_attributes": True}


class Brush(BaseModel):
    start_index: int
    end_index: int

    model_config = {"from_attributes": True}


class ResetAction(BaseModel):
    type: Literal["reset"] = "reset"


class ZoomAction(BaseModel):
    type: Literal["zoom"] = "zoom"
    direction: Literal["in", "out"]
    focal_ratio: float = Field(default=0.5, ge=0, le=1)
    factor: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _factor_matches_direction(self) -> "ZoomAction":
        if self.factor is None:
            return self
        if self.direction == "in" and self.factor >= 1:
            raise ValueError("Zoom-in factor must be below 1")
        if self.direction == "out" and self.factor <= 1:
            raise ValueError("Zoom-out factor must be above 1")
        return self


class PanAction(BaseModel):
    type: Literal["pan"] = "pan"
    delta_ms: float | None = None
    delta_ratio: float | None = None

    @model_validator(mode="after")
    def _require_one_delta(self) -> "PanAction":
        if (self.delta_ms is None) == (self.delta_ratio is None):
            raise ValueError("Provide exactly one of delta_ms or delta_ratio")
        return self


class WheelAction(BaseModel):
    type: Literal["wheel"] = "wheel"
    delta: float
    focal_ratio: float = Field(default=0.5, ge=0, le=1)
    mode: Literal["zoom", "pan"] = "zoom"


class BrushAction(BaseModel):
    type: Literal["brush"] = "brush"
    start_index: int
    end_index: int


ViewportAction = Annotated[
    ResetAction | ZoomAction | PanAction | WheelAction | BrushAction,
    Field(discriminator="type"),
]


class ViewportRequest(BaseModel):
    query: HistoryRequest
    window: Window | None = Field(
        default=None, description="Window the client is currently showing; omit for the default"
    )
    action: ViewportAction


class ViewportResponse(BaseModel):
    window: Window
    brush: Brush
    bounds: Window
    explicit: bool


class LookbackOptions(BaseModel):
    default_days: int
    lookback_days: list[int]

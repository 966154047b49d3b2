"""Typed domain representations shared by ingestion, the series core, and the API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

MS_PER_HOUR = 60 * 60 * 1000

Venue = Literal["hyperliquid", "binance"]


@dataclass(slots=True, frozen=True)
class RawSample:
    """One funding quote as reported by a venue, in the venue's own settlement period."""

    time: int
    rate: float


@dataclass(slots=True, frozen=True)
class AlignedPoint:
    """Hour-bucketed comparison point; rates are hourly-normalized percentages."""

    time: int
    primary: float | None
    secondary: float | None
    spread: float | None


@dataclass(slots=True, frozen=True)
class TimeBounds:
    """Inclusive extent of an aligned series."""

    min: int
    max: int

    @property
    def span(self) -> int:
        return self.max - self.min


@dataclass(slots=True, frozen=True)
class TimeWindow:
    start: int
    end: int

    @property
    def span(self) -> int:
        return self.end - self.start


@dataclass(slots=True, frozen=True)
class BrushState:
    """Sample indices a range selector must cover to show the visible window."""

    start_index: int
    end_index: int


@dataclass(slots=True, frozen=True)
class ViewportConfig:
    """Caller-supplied viewport constants.

    Zoom-in factors are below 1 and zoom-out factors above 1. ``wheel_pan_ratio`` is the
    fraction of the visible span shifted per wheel notch in pan mode.
    """

    min_window_ms: int
    button_zoom_in: float
    button_zoom_out: float
    wheel_zoom_in: float
    wheel_zoom_out: float
    wheel_pan_ratio: float


@dataclass(slots=True, frozen=True)
class FetchSuccess:
    venue: Venue
    samples: list[RawSample] = field(default_factory=list)
    period_hours: float | None = None


@dataclass(slots=True, frozen=True)
class FetchFailure:
    venue: Venue
    error: str


FetchResult = FetchSuccess | FetchFailure


@dataclass(slots=True, frozen=True)
class SeriesPair:
    """Tagged fetch results for one primary/secondary query."""

    primary: FetchResult
    secondary: FetchResult

    @staticmethod
    def samples_of(result: FetchResult) -> list[RawSample]:
        return result.samples if isinstance(result, FetchSuccess) else []

    @property
    def secondary_period_hours(self) -> float | None:
        if isinstance(self.secondary, FetchSuccess):
            return self.secondary.period_hours
        return None

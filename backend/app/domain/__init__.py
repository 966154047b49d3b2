"""Domain models representing funding samples, aligned points, and viewport state."""

from .models import (
    MS_PER_HOUR,
    AlignedPoint,
    BrushState,
    FetchFailure,
    FetchResult,
    FetchSuccess,
    RawSample,
    SeriesPair,
    TimeBounds,
    TimeWindow,
    Venue,
    ViewportConfig,
)

__all__ = [
    "MS_PER_HOUR",
    "AlignedPoint",
    "BrushState",
    "FetchFailure",
    "FetchResult",
    "FetchSuccess",
    "RawSample",
    "SeriesPair",
    "TimeBounds",
    "TimeWindow",
    "Venue",
    "ViewportConfig",
]

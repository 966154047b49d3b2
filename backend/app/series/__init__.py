"""Series alignment, index lookup, and viewport state for funding charts."""

from .aligner import (
    NoDataError,
    align_series,
    bucket_to_hour,
    hourly_percent,
    normalize_samples,
    resolve_period_hours,
    time_bounds,
)
from .locator import LocateMode, nearest_index
from .viewport import ViewportController, WheelMode, ZoomDirection

__all__ = [
    "LocateMode",
    "NoDataError",
    "ViewportController",
    "WheelMode",
    "ZoomDirection",
    "align_series",
    "bucket_to_hour",
    "hourly_percent",
    "nearest_index",
    "normalize_samples",
    "resolve_period_hours",
    "time_bounds",
]

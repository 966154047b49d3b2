"""Clamped zoom/pan/brush state over the time extent of an aligned series."""

from __future__ import annotations

import math
from typing import Literal, Sequence

from app.domain.models import AlignedPoint, BrushState, TimeBounds, TimeWindow, ViewportConfig

from .aligner import time_bounds
from .locator import nearest_index

ZoomDirection = Literal["in", "out"]
WheelMode = Literal["zoom", "pan"]


def _finite(*values: float) -> bool:
    return all(math.isfinite(value) for value in values)


class ViewportController:
    """Own the visible window of one aligned series.

    Without an explicit window the domain is the trailing ``requested_span_ms`` of the
    series. Every gesture funnels through :meth:`set_domain`, which keeps the window inside
    the bounds and at least ``min_window_ms`` wide (or the full extent when the series is
    shorter than that). Gestures never raise for out-of-range or non-finite input; they
    leave the domain unchanged instead.
    """

    def __init__(
        self,
        bounds: TimeBounds,
        config: ViewportConfig,
        requested_span_ms: int,
    ) -> None:
        self._bounds = bounds
        self._config = config
        self._requested_span_ms = requested_span_ms
        self._window: TimeWindow | None = None

    @classmethod
    def for_series(
        cls,
        points: Sequence[AlignedPoint],
        config: ViewportConfig,
        requested_span_ms: int,
    ) -> "ViewportController":
        return cls(time_bounds(points), config, requested_span_ms)

    @property
    def bounds(self) -> TimeBounds:
        return self._bounds

    @property
    def config(self) -> ViewportConfig:
        return self._config

    @property
    def requested_span_ms(self) -> int:
        return self._requested_span_ms

    @property
    def is_explicit(self) -> bool:
        return self._window is not None

    @property
    def domain(self) -> TimeWindow:
        if self._window is not None:
            return self._window
        return self.default_domain()

    def default_domain(self) -> TimeWindow:
        span = min(max(self._requested_span_ms, 0), self._bounds.span)
        start = max(self._bounds.min, self._bounds.max - span)
        return self.clamp(start, self._bounds.max)

    def reset(self) -> TimeWindow:
        self._window = None
        return self.domain

    def set_requested_span(self, requested_span_ms: int) -> TimeWindow:
        """Switch the lookback length; the explicit window is discarded."""

        self._requested_span_ms = requested_span_ms
        return self.reset()

    def clamp(self, raw_start: float, raw_end: float) -> TimeWindow:
        """Return the closest valid window to ``[raw_start, raw_end]`` without storing it."""

        lower, upper = self._bounds.min, self._bounds.max
        start, end = sorted((round(raw_start), round(raw_end)))
        total = upper - lower
        span = max(end - start, min(self._config.min_window_ms, total))
        if span >= total:
            return TimeWindow(start=lower, end=upper)

        if start + span > upper:
            start = upper - span
        if start < lower:
            start = lower
        return TimeWindow(start=start, end=start + span)

    def set_domain(self, raw_start: float, raw_end: float) -> TimeWindow:
        if not _finite(raw_start, raw_end):
            return self.domain
        self._window = self.clamp(raw_start, raw_end)
        return self._window

    def zoom(
        self,
        direction: ZoomDirection,
        focal_ratio: float = 0.5,
        *,
        factor: float | None = None,
    ) -> TimeWindow:
        """Scale the window around ``focal_ratio`` (0 = start, 1 = end).

        The timestamp under the focal point stays fixed. ``factor`` defaults to the button
        step for ``direction``.
        """

        if direction not in ("in", "out"):
            raise ValueError(f"Unsupported zoom direction '{direction}'")
        if factor is None:
            factor = (
                self._config.button_zoom_in
                if direction == "in"
                else self._config.button_zoom_out
            )

        total = self._bounds.span
        if total == 0 or not _finite(focal_ratio, factor) or factor <= 0:
            return self.domain

        ratio = min(max(focal_ratio, 0.0), 1.0)
        current = self.domain
        min_window = self._config.min_window_ms
        current_span = max(current.span, min_window)
        next_span = min(max(current_span * factor, min_window), total)
        focal_time = current.start + current.span * ratio
        return self.set_domain(
            focal_time - next_span * ratio,
            focal_time + next_span * (1 - ratio),
        )

    def zoom_in(self, focal_ratio: float = 0.5) -> TimeWindow:
        return self.zoom("in", focal_ratio)

    def zoom_out(self, focal_ratio: float = 0.5) -> TimeWindow:
        return self.zoom("out", focal_ratio)

    def pan(self, delta_ms: float) -> TimeWindow:
        """Shift the window; at a boundary it sticks without shrinking."""

        if self._bounds.span == 0 or not _finite(delta_ms):
            return self.domain
        current = self.domain
        return self.set_domain(current.start + delta_ms, current.end + delta_ms)

    def pan_ratio(self, delta_ratio: float) -> TimeWindow:
        if not _finite(delta_ratio):
            return self.domain
        return self.pan(self.domain.span * delta_ratio)

    def wheel(
        self,
        delta: float,
        focal_ratio: float = 0.5,
        mode: WheelMode = "zoom",
    ) -> TimeWindow:
        """Apply one wheel notch: negative deltas zoom in, positive zoom out.

        In ``pan`` mode the sign of ``delta`` picks the pan direction instead.
        """

        if not _finite(delta) or delta == 0:
            return self.domain
        if mode == "pan":
            step = self._config.wheel_pan_ratio
            return self.pan_ratio(step if delta > 0 else -step)
        if delta < 0:
            return self.zoom("in", focal_ratio, factor=self._config.wheel_zoom_in)
        return self.zoom("out", focal_ratio, factor=self._config.wheel_zoom_out)

    def sync_from_brush(
        self,
        start_index: int,
        end_index: int,
        series: Sequence[AlignedPoint],
    ) -> TimeWindow:
        """Adopt a range-selector selection; zero-width selections are ignored."""

        if not series or start_index == end_index:
            return self.domain
        last = len(series) - 1
        lower, upper = sorted(
            (min(max(start_index, 0), last), min(max(end_index, 0), last))
        )
        if lower == upper:
            return self.domain
        return self.set_domain(series[lower].time, series[upper].time)

    def brush_state(self, series: Sequence[AlignedPoint]) -> BrushState:
        """Return selector indices that fully cover the current domain."""

        if not series:
            return BrushState(start_index=0, end_index=0)
        current = self.domain
        return BrushState(
            start_index=nearest_index(series, current.start, "floor"),
            end_index=nearest_index(series, current.end, "ceil"),
        )


__all__ = ["ViewportController", "WheelMode", "ZoomDirection"]

"""Stateless viewport transitions for clients that keep their own window."""

from __future__ import annotations

from dataclasses import dataclass

from app.domain import BrushState, TimeBounds, TimeWindow
from app.schemas import (
    BrushAction,
    PanAction,
    ResetAction,
    ViewportAction,
    WheelAction,
    ZoomAction,
)

from .history_service import FundingHistoryService, HistoryQuery


@dataclass(slots=True)
class ViewportResult:
    window: TimeWindow
    brush: BrushState
    bounds: TimeBounds
    explicit: bool


class ViewportService:
    """Replay a client's window onto a fresh controller and apply one gesture."""

    def __init__(self, history: FundingHistoryService) -> None:
        self._history = history

    def apply(
        self,
        query: HistoryQuery,
        window: TimeWindow | None,
        action: ViewportAction,
    ) -> ViewportResult:
        series = self._history.load(query)
        controller = self._history.viewport(query, series)
        if window is not None:
            controller.set_domain(window.start, window.end)

        if isinstance(action, ResetAction):
            controller.reset()
        elif isinstance(action, ZoomAction):
            controller.zoom(action.direction, action.focal_ratio, factor=action.factor)
        elif isinstance(action, PanAction):
            if action.delta_ms is not None:
                controller.pan(action.delta_ms)
            else:
                controller.pan_ratio(action.delta_ratio)
        elif isinstance(action, WheelAction):
            controller.wheel(action.delta, action.focal_ratio, action.mode)
        elif isinstance(action, BrushAction):
            controller.sync_from_brush(action.start_index, action.end_index, series)
        else:  # pragma: no cover - guarded by the discriminated union
            raise TypeError(f"Unsupported viewport action {type(action).__name__}")

        return ViewportResult(
            window=controller.domain,
            brush=controller.brush_state(series),
            bounds=controller.bounds,
            explicit=controller.is_explicit,
        )

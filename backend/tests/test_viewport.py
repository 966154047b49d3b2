from __future__ import annotations

import math

import pytest

from app.domain import MS_PER_HOUR, TimeBounds, TimeWindow, ViewportConfig
from app.series import ViewportController

H = MS_PER_HOUR
DAY = 24 * H
THIRTY_DAYS = TimeBounds(min=0, max=720 * H)


@pytest.fixture
def controller(viewport_config) -> ViewportController:
    return ViewportController(THIRTY_DAYS, viewport_config, 7 * DAY)


def _assert_valid(window: TimeWindow, bounds: TimeBounds, min_window: int) -> None:
    assert bounds.min <= window.start <= window.end <= bounds.max
    assert window.span >= min(min_window, bounds.span)


def test_default_domain_is_trailing_lookback(controller):
    assert controller.domain == TimeWindow(start=720 * H - 7 * DAY, end=720 * H)
    assert not controller.is_explicit


def test_default_domain_clips_lookback_to_series(viewport_config):
    controller = ViewportController(TimeBounds(min=0, max=2 * DAY), viewport_config, 30 * DAY)

    assert controller.domain == TimeWindow(start=0, end=2 * DAY)


def test_default_domain_honours_min_window(viewport_config):
    controller = ViewportController(THIRTY_DAYS, viewport_config, H)

    assert controller.domain == TimeWindow(start=717 * H, end=720 * H)


def test_set_domain_widens_to_min_window_and_clamps_start(controller):
    window = controller.set_domain(-1000, 500)

    assert window == TimeWindow(start=0, end=max(1500, 3 * H))
    assert controller.is_explicit


def test_set_domain_normalizes_reversed_input(controller):
    assert controller.set_domain(200 * H, 100 * H) == TimeWindow(start=100 * H, end=200 * H)


def test_set_domain_slides_back_from_upper_bound(controller):
    window = controller.set_domain(719 * H, 800 * H)

    assert window == TimeWindow(start=720 * H - 81 * H, end=720 * H)


def test_set_domain_wider_than_bounds_returns_full_extent(controller):
    assert controller.set_domain(-DAY, 800 * H) == TimeWindow(start=0, end=720 * H)


@pytest.mark.parametrize(
    "raw_start, raw_end",
    [
        (-1000, 500),
        (100 * H, 100 * H),
        (700 * H, 900 * H),
        (-5 * DAY, 2 * DAY),
        (12_345.6, 7 * H + 0.4),
        (720 * H, 720 * H),
        (300 * H + 17, 299 * H - 3),
    ],
)
def test_set_domain_is_idempotent_and_within_bounds(controller, viewport_config, raw_start, raw_end):
    first = controller.set_domain(raw_start, raw_end)
    second = controller.set_domain(first.start, first.end)

    assert second == first
    _assert_valid(first, THIRTY_DAYS, viewport_config.min_window_ms)


def test_non_finite_domain_leaves_window_unchanged(controller):
    before = controller.set_domain(100 * H, 200 * H)

    assert controller.set_domain(math.nan, 200 * H) == before
    assert controller.set_domain(0, math.inf) == before


def test_focal_zoom_keeps_cursor_timestamp_fixed():
    config = ViewportConfig(
        min_window_ms=1000,
        button_zoom_in=0.75,
        button_zoom_out=1.25,
        wheel_zoom_in=0.8,
        wheel_zoom_out=1.25,
        wheel_pan_ratio=0.1,
    )
    controller = ViewportController(TimeBounds(min=0, max=100_000), config, 100_000)
    controller.set_domain(0, 10_000)

    assert controller.wheel(-1, focal_ratio=0.2) == TimeWindow(start=400, end=8400)


def test_button_zoom_centers_on_window_midpoint(controller):
    controller.set_domain(100 * H, 200 * H)

    window = controller.zoom_in()

    assert window == TimeWindow(start=int(112.5 * H), end=int(187.5 * H))
    assert (window.start + window.end) / 2 == 150 * H


def test_zoom_in_then_out_restores_span(controller):
    controller.set_domain(100 * H, 200 * H)

    controller.zoom("in", 0.5, factor=0.8)
    window = controller.zoom("out", 0.5, factor=1.25)

    assert window.span == pytest.approx(100 * H, abs=2)
    assert (window.start + window.end) / 2 == pytest.approx(150 * H, abs=2)


def test_repeated_zoom_in_stops_at_min_window(controller, viewport_config):
    for _ in range(60):
        window = controller.zoom_in(focal_ratio=0.3)

    assert window.span == pytest.approx(viewport_config.min_window_ms, abs=1)
    _assert_valid(window, THIRTY_DAYS, viewport_config.min_window_ms)


def test_repeated_zoom_out_stops_at_full_bounds(controller):
    for _ in range(30):
        window = controller.zoom_out()

    assert window == TimeWindow(start=0, end=720 * H)


def test_zoom_rejects_unknown_direction(controller):
    with pytest.raises(ValueError):
        controller.zoom("sideways")  # type: ignore[arg-type]


def test_pan_sticks_at_upper_boundary_without_shrinking(controller):
    controller.set_domain(600 * H, 700 * H)

    window = controller.pan(50 * H)

    assert window == TimeWindow(start=620 * H, end=720 * H)


def test_pan_sticks_at_lower_boundary_without_shrinking(controller):
    controller.set_domain(10 * H, 40 * H)

    assert controller.pan_ratio(-2) == TimeWindow(start=0, end=30 * H)


def test_wheel_pan_mode_shifts_by_configured_ratio(controller):
    controller.set_domain(100 * H, 200 * H)

    assert controller.wheel(3, mode="pan") == TimeWindow(start=110 * H, end=210 * H)
    assert controller.wheel(-3, mode="pan") == TimeWindow(start=100 * H, end=200 * H)


@pytest.mark.parametrize("delta", [0, math.nan])
def test_wheel_without_movement_is_ignored(controller, delta):
    before = controller.domain

    assert controller.wheel(delta, focal_ratio=0.5) == before
    assert not controller.is_explicit


def test_wheel_zoom_out_uses_wheel_factor(controller, viewport_config):
    controller.set_domain(100 * H, 200 * H)

    window = controller.wheel(1, focal_ratio=0.5)

    assert window.span == pytest.approx(100 * H * viewport_config.wheel_zoom_out, abs=1)


def test_brush_selection_sets_domain(controller, hourly_series):
    window = controller.sync_from_brush(40, 10, hourly_series)

    assert window == TimeWindow(start=10 * H, end=40 * H)
    assert controller.brush_state(hourly_series).start_index == 10
    assert controller.brush_state(hourly_series).end_index == 40


def test_degenerate_brush_selection_is_ignored(controller, hourly_series):
    before = controller.domain

    assert controller.sync_from_brush(25, 25, hourly_series) == before
    assert controller.sync_from_brush(900, 1000, hourly_series) == before
    assert not controller.is_explicit


def test_brush_selection_narrower_than_min_window_is_widened(controller, hourly_series):
    window = controller.sync_from_brush(100, 101, hourly_series)

    assert window == TimeWindow(start=100 * H, end=103 * H)


def test_brush_state_covers_visible_domain(controller, hourly_series):
    controller.set_domain(10 * H + 1000, 20 * H - 1000)

    brush = controller.brush_state(hourly_series)

    assert (brush.start_index, brush.end_index) == (10, 20)
    assert hourly_series[brush.start_index].time <= controller.domain.start
    assert hourly_series[brush.end_index].time >= controller.domain.end


def test_brush_state_for_default_domain(controller, hourly_series):
    brush = controller.brush_state(hourly_series)

    assert (brush.start_index, brush.end_index) == (720 - 168, 720)


def test_reset_returns_to_default(controller):
    default = controller.domain
    controller.set_domain(10 * H, 20 * H)

    assert controller.reset() == default
    assert not controller.is_explicit


def test_set_requested_span_discards_explicit_window(controller):
    controller.set_domain(10 * H, 20 * H)

    window = controller.set_requested_span(DAY)

    assert window == TimeWindow(start=696 * H, end=720 * H)
    assert not controller.is_explicit


def test_collapsed_bounds_pin_every_window(viewport_config):
    bounds = TimeBounds(min=5 * H, max=5 * H)
    controller = ViewportController(bounds, viewport_config, 7 * DAY)
    pinned = TimeWindow(start=5 * H, end=5 * H)

    assert controller.domain == pinned
    assert controller.zoom_in() == pinned
    assert controller.zoom_out(0.9) == pinned
    assert controller.pan(10 * H) == pinned
    assert controller.set_domain(0, 100 * H) == pinned


def test_bounds_shorter_than_min_window_show_everything(viewport_config):
    controller = ViewportController(TimeBounds(min=0, max=H), viewport_config, 7 * DAY)

    assert controller.set_domain(10, 20) == TimeWindow(start=0, end=H)
    assert controller.zoom_in() == TimeWindow(start=0, end=H)

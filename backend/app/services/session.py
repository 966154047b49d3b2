"""Interactive chart session: current series, its viewport, and query generations."""

from __future__ import annotations

from typing import Sequence

from loguru import logger

from app.domain import AlignedPoint, BrushState, TimeWindow, ViewportConfig
from app.series import ViewportController

from .cache import HistoryCacheKey


class StaleQueryError(RuntimeError):
    """Raised when a superseded query tries to install its result."""


class GenerationCounter:
    """Monotonic query ids; only the most recent id is current."""

    def __init__(self) -> None:
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def advance(self) -> int:
        self._current += 1
        return self._current

    def is_current(self, generation: int) -> bool:
        return generation == self._current


class ChartSession:
    """Hold the series a chart is showing and rebuild its viewport for every installed series.

    Each new query takes a generation from :meth:`begin_query`. A result arriving with an
    older generation was superseded while in flight and is discarded.
    """

    def __init__(self, config: ViewportConfig, requested_span_ms: int) -> None:
        self._config = config
        self._requested_span_ms = requested_span_ms
        self._generations = GenerationCounter()
        self._key: HistoryCacheKey | None = None
        self._series: list[AlignedPoint] = []
        self._viewport: ViewportController | None = None

    @property
    def series(self) -> Sequence[AlignedPoint]:
        return self._series

    @property
    def key(self) -> HistoryCacheKey | None:
        return self._key

    @property
    def viewport(self) -> ViewportController | None:
        return self._viewport

    def begin_query(self) -> int:
        return self._generations.advance()

    def complete(
        self,
        generation: int,
        key: HistoryCacheKey,
        series: list[AlignedPoint],
        *,
        strict: bool = False,
    ) -> bool:
        """Install ``series`` if ``generation`` is still current.

        Returns ``False`` for stale results, or raises :class:`StaleQueryError` when
        ``strict`` is set.
        """

        if not self._generations.is_current(generation):
            logger.warning(
                "Discarding stale funding history for {} (generation {} < {})",
                key.symbol,
                generation,
                self._generations.current,
            )
            if strict:
                raise StaleQueryError(f"Query generation {generation} was superseded")
            return False

        if not series:
            self._key, self._series, self._viewport = key, [], None
            return True

        if key != self._key:
            logger.debug("Chart series changed from {} to {}", self._key, key)
        self._viewport = ViewportController.for_series(
            series, self._config, self._requested_span_ms
        )
        self._key = key
        self._series = list(series)
        return True

    def set_lookback(self, requested_span_ms: int) -> TimeWindow | None:
        self._requested_span_ms = requested_span_ms
        if self._viewport is None:
            return None
        return self._viewport.set_requested_span(requested_span_ms)

    def brush_state(self) -> BrushState | None:
        if self._viewport is None:
            return None
        return self._viewport.brush_state(self._series)

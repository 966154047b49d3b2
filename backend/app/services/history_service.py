"""Build aligned funding histories from venue fetches, with caching."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from loguru import logger

from app.core.config import Settings, get_settings
from app.domain import MS_PER_HOUR, AlignedPoint, FetchFailure, SeriesPair
from app.series import NoDataError, ViewportController, align_series
from ingestion.service import SeriesFetcher, history_start_time, now_ms

from .cache import AlignedSeriesCache, HistoryCacheKey


@dataclass(slots=True)
class HistoryQuery:
    symbol: str
    secondary_symbol: str | None = None
    days: int = 7
    secondary_period_hours: float | None = None

    @property
    def requested_span_ms(self) -> int:
        return max(self.days, 1) * 24 * MS_PER_HOUR

    def cache_key(self) -> HistoryCacheKey:
        """Identity of the aligned series this query produces."""

        return HistoryCacheKey(
            symbol=self.symbol,
            secondary_symbol=self.secondary_symbol,
            secondary_period_hours=self.secondary_period_hours,
            requested_span_ms=self.requested_span_ms,
        )


class FundingHistoryService:
    """Fetch, align, and cache primary/secondary funding histories."""

    def __init__(
        self,
        fetcher: SeriesFetcher,
        *,
        cache: AlignedSeriesCache | None = None,
        settings: Settings | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._settings = settings or get_settings()
        self._fetcher = fetcher
        self._cache = cache or AlignedSeriesCache(
            self._settings.history_cache_size,
            ttl_seconds=self._settings.history_cache_ttl_seconds,
        )
        self._clock = clock

    @property
    def cache(self) -> AlignedSeriesCache:
        return self._cache

    def load(self, query: HistoryQuery) -> list[AlignedPoint]:
        key = query.cache_key()
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        start_time = history_start_time(
            self._clock(), query.days, self._settings.hyperliquid_max_history_points
        )
        pair = self._fetcher.fetch_pair(
            query.symbol,
            query.secondary_symbol,
            start_time,
            secondary_period_hours=query.secondary_period_hours,
        )
        points = self.align(pair, query)

        if isinstance(pair.primary, FetchFailure) or isinstance(pair.secondary, FetchFailure):
            logger.warning(
                "Not caching partial funding history for {} / {}",
                query.symbol,
                query.secondary_symbol,
            )
        else:
            self._cache.put(key, points)
        logger.info(
            "Built funding history for {} / {} ({} points)",
            query.symbol,
            query.secondary_symbol,
            len(points),
        )
        return points

    def align(self, pair: SeriesPair, query: HistoryQuery) -> list[AlignedPoint]:
        try:
            return align_series(
                SeriesPair.samples_of(pair.primary),
                SeriesPair.samples_of(pair.secondary),
                query.secondary_period_hours or pair.secondary_period_hours,
                fallback_period_hours=self._settings.default_secondary_period_hours,
            )
        except NoDataError as exc:
            failures = [
                result.error
                for result in (pair.primary, pair.secondary)
                if isinstance(result, FetchFailure)
            ]
            detail = f"No funding history available for {query.symbol}"
            if failures:
                detail = f"{detail} ({'; '.join(failures)})"
            raise NoDataError(detail) from exc

    def viewport(self, query: HistoryQuery, points: list[AlignedPoint]) -> ViewportController:
        return ViewportController.for_series(
            points, self._settings.viewport_config(), query.requested_span_ms
        )

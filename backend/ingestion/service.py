from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from app.domain import MS_PER_HOUR, FetchFailure, FetchResult, FetchSuccess, SeriesPair, Venue

from .client import BinanceClient, HyperliquidClient, VenueRequestError


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def history_start_time(now: int, days: float, max_points: int) -> int:
    """Earliest timestamp worth requesting given the primary venue's point limit."""

    desired_start = now - int(max(days, 1) * 24 * MS_PER_HOUR)
    latest_allowed_start = now - max_points * MS_PER_HOUR
    return max(desired_start, latest_allowed_start)


def _tagged(
    venue: Venue,
    fetch: Callable[[], list],
    *,
    period_hours: float | None = None,
) -> FetchResult:
    try:
        samples = fetch()
    except VenueRequestError as exc:
        logger.warning("{} funding history unavailable: {}", venue, exc)
        return FetchFailure(venue=venue, error=str(exc))
    logger.info("Fetched {} {} funding samples", len(samples), venue)
    return FetchSuccess(venue=venue, samples=samples, period_hours=period_hours)


class SeriesFetcher:
    """Fetch the primary (Hyperliquid) and secondary (Binance) histories for one pair."""

    def __init__(
        self,
        *,
        hyperliquid: HyperliquidClient | None = None,
        binance: BinanceClient | None = None,
    ) -> None:
        self.hyperliquid = hyperliquid or HyperliquidClient()
        self.binance = binance or BinanceClient()

    def fetch_pair(
        self,
        symbol: str,
        secondary_symbol: str | None,
        start_time: int,
        *,
        secondary_period_hours: float | None = None,
    ) -> SeriesPair:
        with ThreadPoolExecutor(max_workers=3) as executor:
            primary_future = executor.submit(
                _tagged,
                "hyperliquid",
                lambda: self.hyperliquid.fetch_funding_history(symbol, start_time),
                period_hours=1.0,
            )
            if secondary_symbol:
                secondary_future = executor.submit(
                    _tagged,
                    "binance",
                    lambda: self.binance.fetch_funding_history(secondary_symbol, start_time),
                )
                period_future = executor.submit(
                    self.secondary_period_hours, secondary_symbol, secondary_period_hours
                )
                secondary = secondary_future.result()
                if isinstance(secondary, FetchSuccess):
                    secondary = replace(secondary, period_hours=period_future.result())
            else:
                secondary = FetchSuccess(venue="binance", period_hours=secondary_period_hours)
            primary = primary_future.result()
        return SeriesPair(primary=primary, secondary=secondary)

    def secondary_period_hours(
        self, secondary_symbol: str, requested: float | None = None
    ) -> float | None:
        """Settlement period of ``secondary_symbol``; ``requested`` wins when given.

        Returns ``None`` when Binance does not list the symbol, so the aligner's fallback
        period applies.
        """

        if requested is not None:
            return requested
        period = self.binance.fetch_funding_intervals([secondary_symbol]).get(secondary_symbol)
        if period is None:
            logger.info(
                "No funding interval listed for {}; using the default period", secondary_symbol
            )
        return period

    def close(self) -> None:
        self.hyperliquid.close()
        self.binance.close()

    def __enter__(self) -> "SeriesFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

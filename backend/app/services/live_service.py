"""Current funding rates for the symbols visible on a dashboard page."""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from app.core.config import Settings, get_settings
from ingestion.client import BinanceClient, HyperliquidClient, VenueRequestError


@dataclass(slots=True)
class LiveFundingSnapshot:
    hyperliquid: dict[str, float] = field(default_factory=dict)
    binance: dict[str, float] = field(default_factory=dict)


class LiveFundingService:
    """Read-only facade over both venues' live funding endpoints.

    Hyperliquid rates are already hourly. Binance rates are divided by each symbol's
    settlement period so both maps are directly comparable.
    """

    def __init__(
        self,
        *,
        hyperliquid: HyperliquidClient,
        binance: BinanceClient,
        settings: Settings | None = None,
    ) -> None:
        self._hyperliquid = hyperliquid
        self._binance = binance
        self._settings = settings or get_settings()

    def snapshot(
        self, hyper_symbols: list[str], binance_symbols: list[str]
    ) -> LiveFundingSnapshot:
        snapshot = LiveFundingSnapshot()
        try:
            snapshot.hyperliquid = self._hyperliquid.fetch_live_funding(hyper_symbols)
        except VenueRequestError as exc:
            logger.warning("Hyperliquid live funding unavailable: {}", exc)
        try:
            snapshot.binance = self._binance.fetch_live_funding(
                binance_symbols,
                default_period_hours=self._settings.default_secondary_period_hours,
            )
        except VenueRequestError as exc:
            logger.warning("Binance live funding unavailable: {}", exc)
        return snapshot

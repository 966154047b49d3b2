from __future__ import annotations

import time
from typing import Any, Callable

import httpx
from loguru import logger

from app.core.config import settings
from app.domain import RawSample, Venue

from .normalize import (
    normalize_binance_history,
    normalize_binance_live,
    normalize_binance_perpetuals,
    normalize_funding_intervals,
    normalize_hyperliquid_history,
    normalize_hyperliquid_live,
    normalize_hyperliquid_universe,
)


class VenueRequestError(RuntimeError):
    """Raised when a venue request fails after retries."""

    def __init__(self, venue: Venue, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.venue = venue
        self.status_code = status_code


class _VenueClient:
    """Shared request loop: User-Agent header, 429 backoff, and error wrapping."""

    venue: Venue

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float | None = None,
        user_agent: str | None = None,
        retry_attempts: int | None = None,
        retry_base_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.retry_attempts = (
            settings.http_retry_attempts if retry_attempts is None else retry_attempts
        )
        self.retry_base_seconds = (
            settings.http_retry_base_seconds
            if retry_base_seconds is None
            else retry_base_seconds
        )
        self._sleep = sleep
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"User-Agent": user_agent or settings.http_user_agent},
            transport=transport,
        )

    def _retry_delay(self, response: httpx.Response, attempt: int) -> float:
        retry_after = response.headers.get("retry-after")
        if retry_after is not None:
            try:
                return max(float(retry_after), 0.0)
            except ValueError:
                pass
        return self.retry_base_seconds * (2**attempt)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        attempt = 0
        while True:
            try:
                response = self.client.request(method, path, **kwargs)
            except httpx.HTTPError as exc:
                raise VenueRequestError(
                    self.venue, f"{self.venue} request {method} {path} failed: {exc}"
                ) from exc

            if response.status_code == 429 and attempt < self.retry_attempts:
                delay = self._retry_delay(response, attempt)
                attempt += 1
                logger.warning(
                    "{} rate limited on {}; retry {}/{} in {:.2f}s",
                    self.venue,
                    path,
                    attempt,
                    self.retry_attempts,
                    delay,
                )
                self._sleep(delay)
                continue

            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise VenueRequestError(
                    self.venue,
                    f"{self.venue} request {method} {path} failed ({response.status_code}): "
                    f"{response.text[:200]}",
                    status_code=response.status_code,
                ) from exc
            return response.json()

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class HyperliquidClient(_VenueClient):
    """Hyperliquid info endpoint: hourly funding history and asset contexts."""

    venue: Venue = "hyperliquid"

    def __init__(
        self,
        *,
        base_url: str | None = None,
        info_path: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(base_url=base_url or str(settings.hyperliquid_base_url), **kwargs)
        self.info_path = info_path or settings.hyperliquid_info_path

    def _info(self, body: dict[str, Any]) -> Any:
        logger.info("Hyperliquid POST {} type={}", self.info_path, body.get("type"))
        return self._request("POST", self.info_path, json=body)

    def fetch_funding_history(self, symbol: str, start_time: int) -> list[RawSample]:
        payload = self._info({"type": "fundingHistory", "coin": symbol, "startTime": start_time})
        return normalize_hyperliquid_history(payload)

    def fetch_meta_and_contexts(self) -> Any:
        return self._info({"type": "metaAndAssetCtxs"})

    def fetch_live_funding(self, symbols: list[str]) -> dict[str, float]:
        if not symbols:
            return {}
        return normalize_hyperliquid_live(self.fetch_meta_and_contexts(), symbols)

    def fetch_universe(self) -> list[str]:
        return normalize_hyperliquid_universe(self.fetch_meta_and_contexts())


class BinanceClient(_VenueClient):
    """Binance USD-M futures endpoints: funding history, premium index, intervals."""

    venue: Venue = "binance"

    def __init__(
        self,
        *,
        base_url: str | None = None,
        history_limit: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(base_url=base_url or str(settings.binance_base_url), **kwargs)
        self.history_limit = history_limit or settings.binance_history_limit

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        logger.info("Binance GET {} params={}", path, params or {})
        return self._request("GET", path, params=params)

    def fetch_funding_history(self, symbol: str, start_time: int | None) -> list[RawSample]:
        params: dict[str, Any] = {"symbol": symbol, "limit": self.history_limit}
        if start_time is not None:
            params["startTime"] = start_time
        try:
            payload = self._get(settings.binance_funding_rate_path, params)
        except VenueRequestError as exc:
            if exc.status_code != 403 or start_time is None:
                raise
            logger.warning(
                "Binance rejected startTime for {}; retrying with latest records only", symbol
            )
            params.pop("startTime")
            payload = self._get(settings.binance_funding_rate_path, params)
        return normalize_binance_history(payload)

    def fetch_funding_intervals(self, symbols: list[str] | None = None) -> dict[str, float]:
        """Return settlement periods; an unavailable endpoint yields an empty map."""
        try:
            payload = self._get(settings.binance_funding_info_path)
        except VenueRequestError as exc:
            logger.warning("Binance funding interval lookup failed: {}", exc)
            return {}
        return normalize_funding_intervals(payload, symbols)

    def fetch_live_funding(
        self, symbols: list[str], *, default_period_hours: float | None = None
    ) -> dict[str, float]:
        if not symbols:
            return {}
        payload = self._get(settings.binance_premium_index_path)
        intervals = self.fetch_funding_intervals(symbols)
        return normalize_binance_live(
            payload,
            symbols,
            intervals,
            default_period_hours=default_period_hours
            or settings.default_secondary_period_hours,
        )

    def fetch_perpetual_symbols(self, allowed_quotes: list[str] | None = None) -> set[str]:
        payload = self._get(settings.binance_exchange_info_path)
        return normalize_binance_perpetuals(
            payload, allowed_quotes or settings.binance_allowed_quotes
        )

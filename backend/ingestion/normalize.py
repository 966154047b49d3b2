from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from loguru import logger

from app.domain import RawSample
from app.series import bucket_to_hour


def _parse_float(value: Any) -> float | None:
    """Return a finite float for numbers or numeric strings, otherwise ``None``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _parse_timestamp(value: Any) -> int | None:
    parsed = _parse_float(value)
    if parsed is None:
        return None
    return bucket_to_hour(parsed)


def _normalize_history(
    payload: Any, *, time_key: str, rate_key: str, venue: str
) -> list[RawSample]:
    if not isinstance(payload, list):
        logger.warning("{} funding history payload is not a list; ignoring", venue)
        return []

    samples: list[RawSample] = []
    dropped = 0
    for entry in payload:
        if not isinstance(entry, Mapping):
            dropped += 1
            continue
        time = _parse_timestamp(entry.get(time_key))
        rate = _parse_float(entry.get(rate_key))
        if time is None or rate is None:
            dropped += 1
            continue
        samples.append(RawSample(time=time, rate=rate))

    if dropped:
        logger.warning("Dropped {} malformed {} funding entries", dropped, venue)
    samples.sort(key=lambda sample: sample.time)
    return samples


def normalize_hyperliquid_history(payload: Any) -> list[RawSample]:
    return _normalize_history(
        payload, time_key="time", rate_key="fundingRate", venue="Hyperliquid"
    )


def normalize_binance_history(payload: Any) -> list[RawSample]:
    return _normalize_history(
        payload, time_key="fundingTime", rate_key="fundingRate", venue="Binance"
    )


def _split_meta_and_contexts(payload: Any) -> tuple[list[Any], list[Any]]:
    if not isinstance(payload, list) or len(payload) < 1:
        return [], []
    meta = payload[0] if isinstance(payload[0], Mapping) else {}
    universe = meta.get("universe")
    contexts = payload[1] if len(payload) > 1 and isinstance(payload[1], list) else []
    return (universe if isinstance(universe, list) else []), contexts


def normalize_hyperliquid_universe(payload: Any) -> list[str]:
    """Return listed (non-delisted) asset names from a ``metaAndAssetCtxs`` payload."""
    universe, _ = _split_meta_and_contexts(payload)
    names: list[str] = []
    for asset in universe:
        if not isinstance(asset, Mapping) or asset.get("isDelisted"):
            continue
        name = asset.get("name")
        if isinstance(name, str) and name:
            names.append(name)
    return names


def normalize_hyperliquid_live(payload: Any, symbols: Iterable[str]) -> dict[str, float]:
    """Pair universe entries with their asset contexts by position."""
    targets = {symbol.upper() for symbol in symbols}
    universe, contexts = _split_meta_and_contexts(payload)

    funding: dict[str, float] = {}
    for index, asset in enumerate(universe):
        if not isinstance(asset, Mapping) or asset.get("name") not in targets:
            continue
        context = contexts[index] if index < len(contexts) else None
        if not isinstance(context, Mapping):
            continue
        rate = _parse_float(context.get("funding"))
        if rate is not None:
            funding[asset["name"]] = rate
    return funding


def normalize_funding_intervals(
    payload: Any, symbols: Iterable[str] | None = None
) -> dict[str, float]:
    """Map symbol -> settlement period (hours) from a Binance ``fundingInfo`` payload."""
    if not isinstance(payload, list):
        return {}
    targets = set(symbols) if symbols is not None else None

    intervals: dict[str, float] = {}
    for item in payload:
        if not isinstance(item, Mapping):
            continue
        symbol = item.get("symbol")
        if not isinstance(symbol, str) or (targets is not None and symbol not in targets):
            continue
        hours = _parse_float(item.get("fundingIntervalHours"))
        if hours is not None and hours > 0:
            intervals[symbol] = hours
    return intervals


def normalize_binance_live(
    payload: Any,
    symbols: Iterable[str],
    intervals: Mapping[str, float],
    *,
    default_period_hours: float,
) -> dict[str, float]:
    """Return hourly funding rates from a Binance ``premiumIndex`` payload."""
    if not isinstance(payload, list):
        return {}
    targets = set(symbols)

    funding: dict[str, float] = {}
    for item in payload:
        if not isinstance(item, Mapping) or item.get("symbol") not in targets:
            continue
        rate = _parse_float(item.get("lastFundingRate"))
        if rate is None:
            continue
        period = intervals.get(item["symbol"], default_period_hours)
        funding[item["symbol"]] = rate / max(period, 1.0)
    return funding


def normalize_binance_perpetuals(payload: Any, allowed_quotes: Iterable[str]) -> set[str]:
    """Return perpetual contract symbols quoted in one of ``allowed_quotes``."""
    if not isinstance(payload, Mapping):
        return set()
    quotes = set(allowed_quotes)
    raw_symbols = payload.get("symbols")
    if not isinstance(raw_symbols, list):
        return set()

    return {
        item["symbol"]
        for item in raw_symbols
        if isinstance(item, Mapping)
        and item.get("contractType") == "PERPETUAL"
        and item.get("quoteAsset") in quotes
        and isinstance(item.get("symbol"), str)
        and item["symbol"]
    }

import argparse
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from dateutil import parser as date_parser
from loguru import logger

from app.core.config import get_settings
from app.domain import FetchFailure, SeriesPair
from app.series import NoDataError, align_series
from app.services.export import write_csv
from ingestion.client import BinanceClient, HyperliquidClient, VenueRequestError
from ingestion.service import SeriesFetcher, history_start_time


@dataclass(slots=True)
class MarketPair:
    hyper: str
    binance: str


def _parse_end(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    parsed = date_parser.isoparse(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Export hourly Hyperliquid/Binance funding spreads to CSV"
    )
    parser.add_argument("--days", type=int, default=None, help="History length in days")
    parser.add_argument("--output-dir", type=Path, default=None, help="Directory for CSV files")
    parser.add_argument(
        "--symbol",
        action="append",
        default=None,
        metavar="COIN",
        help="Only export this Hyperliquid coin (repeatable)",
    )
    parser.add_argument("--limit", type=int, default=None, help="Export at most N markets")
    parser.add_argument(
        "--end",
        default=None,
        help="ISO-8601 end of the export window (defaults to now, UTC)",
    )
    return parser.parse_args()


def find_overlapping_markets(
    hyper_symbols: list[str], binance_symbols: set[str]
) -> list[MarketPair]:
    """Pair each Hyperliquid coin with its USDC or USDT perpetual on Binance."""

    pairs: list[MarketPair] = []
    for symbol in hyper_symbols:
        candidate = next(
            (
                name
                for name in (f"{symbol}USDC", f"{symbol}USDT")
                if name in binance_symbols
            ),
            None,
        )
        if candidate:
            pairs.append(MarketPair(hyper=symbol, binance=candidate))
    return pairs


def export_pair(
    fetcher: SeriesFetcher,
    pair: MarketPair,
    *,
    start_time: int,
    end_time: int,
    period_hours: float | None,
    fallback_period_hours: float,
    output_dir: Path,
) -> bool:
    series = fetcher.fetch_pair(
        pair.hyper, pair.binance, start_time, secondary_period_hours=period_hours
    )
    for result in (series.primary, series.secondary):
        if isinstance(result, FetchFailure):
            raise VenueRequestError(result.venue, result.error)
    primary = SeriesPair.samples_of(series.primary)
    if not primary:
        logger.info("Skipping {}: no Hyperliquid history", pair.hyper)
        return True

    try:
        points = align_series(
            primary,
            SeriesPair.samples_of(series.secondary),
            period_hours or series.secondary_period_hours,
            fallback_period_hours=fallback_period_hours,
        )
    except NoDataError:
        logger.info("Skipping {}: no dataset", pair.hyper)
        return True
    points = [point for point in points if point.time <= end_time]
    if not points:
        logger.info("Skipping {}: no history before the export end", pair.hyper)
        return True
    path = write_csv(output_dir / f"{pair.hyper}.csv", points)
    logger.info("Saved {} ({} rows) -> {}", pair.hyper, len(points), path)
    return True


def main() -> None:
    args = parse_args()
    settings = get_settings()
    days = args.days or settings.export_history_days
    output_dir = args.output_dir or Path(settings.export_output_dir)
    end = _parse_end(args.end)
    end_ms = int(end.timestamp() * 1000)
    start_time = history_start_time(end_ms, days, settings.hyperliquid_max_history_points)

    with HyperliquidClient() as hyperliquid, BinanceClient() as binance:
        hyper_symbols = hyperliquid.fetch_universe()
        binance_symbols = binance.fetch_perpetual_symbols()
        intervals = binance.fetch_funding_intervals()
        if args.symbol:
            wanted = {symbol.upper() for symbol in args.symbol}
            hyper_symbols = [symbol for symbol in hyper_symbols if symbol.upper() in wanted]

        pairs = find_overlapping_markets(hyper_symbols, binance_symbols)
        if args.limit:
            pairs = pairs[: args.limit]
        if not pairs:
            logger.error("No overlapping symbols between Hyperliquid and Binance.")
            return
        logger.info("Found {} overlapping markets.", len(pairs))

        fetcher = SeriesFetcher(hyperliquid=hyperliquid, binance=binance)

        def process(pair: MarketPair, *, is_retry: bool = False) -> bool:
            try:
                return export_pair(
                    fetcher,
                    pair,
                    start_time=start_time,
                    end_time=end_ms,
                    period_hours=intervals.get(pair.binance),
                    fallback_period_hours=settings.default_secondary_period_hours,
                    output_dir=output_dir,
                )
            except (VenueRequestError, OSError) as exc:
                logger.error(
                    "Failed to export {}{}: {}", pair.hyper, " (retry)" if is_retry else "", exc
                )
                return False
            finally:
                time.sleep(settings.export_pair_delay_seconds)

        failures = [pair for pair in pairs if not process(pair)]
        if failures:
            logger.info("Retrying {} markets after backoff...", len(failures))
            time.sleep(settings.export_retry_delay_seconds)
            for pair in failures:
                process(pair, is_retry=True)

    logger.info("Done.")


if __name__ == "__main__":
    main()

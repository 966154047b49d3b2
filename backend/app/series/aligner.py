"""Forward-fill join of two funding series sampled at different cadences."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from loguru import logger

from app.domain.models import MS_PER_HOUR, AlignedPoint, RawSample, TimeBounds


class NoDataError(LookupError):
    """Raised when neither venue produced a usable funding sample."""


def bucket_to_hour(value: float) -> int:
    """Floor a millisecond timestamp to the start of its hour."""

    return int(math.floor(value)) // MS_PER_HOUR * MS_PER_HOUR


def _is_usable(sample: RawSample) -> bool:
    try:
        return math.isfinite(float(sample.time)) and math.isfinite(float(sample.rate))
    except (TypeError, ValueError):
        return False


def normalize_samples(samples: Iterable[RawSample]) -> list[RawSample]:
    """Drop non-finite samples, bucket to the hour, keep the last duplicate, sort by time."""

    by_hour: dict[int, float] = {}
    dropped = 0
    for sample in samples:
        if not _is_usable(sample):
            dropped += 1
            continue
        by_hour[bucket_to_hour(sample.time)] = float(sample.rate)
    if dropped:
        logger.debug("Dropped {} malformed funding samples", dropped)
    return [RawSample(time=time, rate=rate) for time, rate in sorted(by_hour.items())]


def resolve_period_hours(period_hours: float | None, fallback: float) -> float:
    if period_hours is None or not math.isfinite(period_hours) or period_hours <= 0:
        return fallback
    return period_hours


def hourly_percent(rate: float, period_hours: float) -> float:
    """Convert a per-settlement rate into an hourly percentage."""

    return rate / max(period_hours, 1.0) * 100


def align_series(
    primary: Sequence[RawSample],
    secondary: Sequence[RawSample],
    secondary_period_hours: float | None = None,
    *,
    fallback_period_hours: float = 8.0,
) -> list[AlignedPoint]:
    """Join ``secondary`` onto the ``primary`` backbone using last-observation-carried-forward.

    Every primary hour gets the most recent secondary value at or before it; later secondary
    samples are never used for earlier points. Without a primary backbone the secondary
    samples are emitted on their own. Raises :class:`NoDataError` when both inputs are empty
    after filtering.
    """

    backbone = normalize_samples(primary)
    carried = normalize_samples(secondary)
    if not backbone and not carried:
        raise NoDataError("No funding history available for either venue")

    period = resolve_period_hours(secondary_period_hours, fallback_period_hours)

    if not backbone:
        return [
            AlignedPoint(
                time=sample.time,
                primary=None,
                secondary=hourly_percent(sample.rate, period),
                spread=None,
            )
            for sample in carried
        ]

    dataset: list[AlignedPoint] = []
    cursor = 0
    current_secondary: float | None = None
    for sample in backbone:
        while cursor < len(carried) and carried[cursor].time <= sample.time:
            current_secondary = hourly_percent(carried[cursor].rate, period)
            cursor += 1

        primary_value = sample.rate * 100
        dataset.append(
            AlignedPoint(
                time=sample.time,
                primary=primary_value,
                secondary=current_secondary,
                spread=(
                    current_secondary - primary_value
                    if current_secondary is not None
                    else None
                ),
            )
        )

    logger.debug(
        "Aligned {} primary points with {} secondary samples (period={}h)",
        len(backbone),
        len(carried),
        period,
    )
    return dataset


def time_bounds(points: Sequence[AlignedPoint]) -> TimeBounds:
    if not points:
        raise NoDataError("Cannot derive time bounds from an empty series")
    return TimeBounds(min=points[0].time, max=points[-1].time)


__all__ = [
    "NoDataError",
    "align_series",
    "bucket_to_hour",
    "hourly_percent",
    "normalize_samples",
    "resolve_period_hours",
    "time_bounds",
]

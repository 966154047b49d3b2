"""CSV rendering for aligned funding histories."""

from __future__ import annotations

import csv
import io
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from app.domain import AlignedPoint

CSV_HEADER = ("timestamp_iso", "primary_percent", "secondary_percent", "spread_percent")


def format_percent(value: float | None) -> str:
    if value is None or not math.isfinite(value):
        return ""
    formatted = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if formatted in ("", "-0") else formatted


def _isoformat_ms(timestamp_ms: int) -> str:
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def render_csv(points: Sequence[AlignedPoint]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for point in points:
        writer.writerow(
            (
                _isoformat_ms(point.time),
                format_percent(point.primary),
                format_percent(point.secondary),
                format_percent(point.spread),
            )
        )
    return buffer.getvalue()


def write_csv(path: Path, points: Sequence[AlignedPoint]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_csv(points), encoding="utf-8")
    return path

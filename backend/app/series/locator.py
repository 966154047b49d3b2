"""Map continuous timestamps onto positions in a sorted sample sequence."""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from operator import attrgetter
from typing import Literal, Protocol, Sequence

LocateMode = Literal["floor", "ceil"]

_time_of = attrgetter("time")


class Timestamped(Protocol):
    time: int


def nearest_index(
    samples: Sequence[Timestamped], target_time: float, mode: LocateMode = "floor"
) -> int:
    """Return the sample index nearest to ``target_time`` under ``mode``.

    ``floor`` picks the last sample at or before the target and ``ceil`` the first sample
    at or after it. Targets outside the series clamp to the first or last index, so the
    result is always a valid position. ``samples`` must be strictly increasing by time.
    """

    count = len(samples)
    if count == 0:
        raise ValueError("nearest_index requires at least one sample")

    if mode == "floor":
        index = bisect_right(samples, target_time, key=_time_of) - 1
    elif mode == "ceil":
        index = bisect_left(samples, target_time, key=_time_of)
    else:
        raise ValueError(f"Unsupported locate mode '{mode}'")

    return min(max(index, 0), count - 1)


__all__ = ["LocateMode", "Timestamped", "nearest_index"]

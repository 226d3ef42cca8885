"""
Window statistics for baselines.

Mean and population standard deviation (divisor = count) over one window of
samples. Used both for the historical baseline and the recent window so the two
are computed identically. statistics works in exact rational arithmetic, so a
constant window always has a stddev of exactly 0.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import Iterable, Optional

from metric_sentinel.data.schema import MetricSample


@dataclass(frozen=True)
class WindowSummary:
    """
    Mean/std of one window of values.
    """

    mean: float
    stddev: float
    count: int


def summarize_values(values: Iterable[float]) -> Optional[WindowSummary]:
    """
    Summarize raw values; None for an empty window.
    """
    values = [float(v) for v in values]
    if not values:
        return None
    return WindowSummary(
        mean=statistics.mean(values),
        stddev=statistics.pstdev(values),
        count=len(values),
    )


def summarize(samples: Iterable[MetricSample]) -> Optional[WindowSummary]:
    return summarize_values(s.value for s in samples)

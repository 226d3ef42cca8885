"""
Z-score detection against a metric baseline.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .schema import BaselineStats


@dataclass
class ZScoreDetector:
    """
    Z-score detector with an explicit zero-variance branch.

    With baseline_stddev == 0 the score is 0.0 when the value equals the
    baseline mean and +/-inf otherwise, so a zero-variance metric is flagged
    on any deviation regardless of threshold.
    """

    threshold: float

    def __post_init__(self) -> None:
        if not isinstance(self.threshold, (int, float)) or not math.isfinite(self.threshold):
            raise ValueError(f"Threshold must be a finite number, got {self.threshold!r}")
        if self.threshold < 0:
            raise ValueError(f"Threshold must be >= 0, got {self.threshold}")

    @staticmethod
    def compute(observed: float, baseline: BaselineStats) -> float:
        deviation = observed - baseline.baseline_mean
        if baseline.zero_variance:
            if deviation == 0:
                return 0.0
            return math.copysign(math.inf, deviation)
        return deviation / baseline.baseline_stddev

    def is_anomalous(self, zscore: float) -> bool:
        # strict: a score exactly at the threshold is not flagged
        return abs(zscore) > self.threshold

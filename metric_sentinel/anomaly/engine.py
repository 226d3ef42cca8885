"""
Statistics engine: per-metric baselines and z-score anomaly detection.

Cycle:
    initialize_baseline(historical window)      once at startup
    update_current_window(recent window)        every polling cycle
    detect_anomalies(recent window, threshold)  every polling cycle
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from metric_sentinel.core.config import UnknownMetricPolicy
from metric_sentinel.core.exceptions import BaselineNotInitializedError
from metric_sentinel.data.schema import MetricSample

from .baselines import summarize
from .detectors import ZScoreDetector
from .schema import Anomaly, BaselineStats

logger = logging.getLogger(__name__)

SampleWindow = Mapping[str, Sequence[MetricSample]]


def zscore_key(sample: MetricSample) -> str:
    return f"{sample.metric_id} at {sample.timestamp.isoformat()}"


@dataclass
class StatisticsEngine:
    """
    Deterministic baseline/z-score engine.

    Notes:
    - State is memory resident and owned by a single caller; it is not
      thread safe.
    - Baselines are replaced wholesale by initialize_baseline.
    - Metrics unseen at initialization follow unknown_metric_policy on update.
    """

    unknown_metric_policy: UnknownMetricPolicy = UnknownMetricPolicy.IGNORE
    stats: Dict[str, BaselineStats] = field(default_factory=dict)
    initialized: bool = False
    z_scores: Dict[str, float] = field(default_factory=dict)

    def get(self, metric_id: str) -> Optional[BaselineStats]:
        return self.stats.get(metric_id)

    def snapshot(self) -> Dict[str, BaselineStats]:
        return {metric_id: s.model_copy() for metric_id, s in self.stats.items()}

    def initialize_baseline(self, samples_by_metric: SampleWindow) -> None:
        """
        Compute baseline mean/stddev for every metric with data.

        Metrics with no samples get no entry. Any previous state, current
        window values included, is discarded.
        """
        logger.info("Initialising baseline...")
        stats: Dict[str, BaselineStats] = {}

        for metric_id, samples in samples_by_metric.items():
            summary = summarize(samples)
            if summary is None:
                logger.warning(f"No data points for metric: {metric_id}. Skipping...")
                continue

            stats[metric_id] = BaselineStats(
                baseline_mean=summary.mean,
                baseline_stddev=summary.stddev,
                baseline_count=summary.count,
            )
            logger.info(
                f"Baseline for metric {metric_id}: "
                f"Mean: {summary.mean:.2f}, StdDev: {summary.stddev:.2f} ({summary.count} points)"
            )

        self.stats = stats
        self.initialized = True
        logger.info(f"Baseline initialised for {len(stats)} of {len(samples_by_metric)} metrics.")

    def update_current_window(self, samples_by_metric: SampleWindow) -> None:
        """
        Overwrite current mean/stddev from the latest recent window.

        An empty window leaves the previous current values untouched.
        """
        for metric_id, samples in samples_by_metric.items():
            summary = summarize(samples)
            if summary is None:
                logger.info(f"No data points for metric: {metric_id} in the current run. Skipping...")
                continue

            entry = self.stats.get(metric_id)
            if entry is None:
                if self.unknown_metric_policy == UnknownMetricPolicy.IGNORE:
                    logger.warning(f"No baseline stats for metric: {metric_id}. Ignoring current window.")
                    continue
                logger.warning(f"No baseline stats for metric: {metric_id}. Creating zero baseline.")
                entry = BaselineStats(baseline_mean=0.0, baseline_stddev=0.0)
                self.stats[metric_id] = entry

            entry.current_mean = summary.mean
            entry.current_stddev = summary.stddev
            entry.current_count = summary.count

            logger.info(
                f"Metric: {metric_id}, Baseline Mean: {entry.baseline_mean:.2f}, "
                f"Baseline StdDev: {entry.baseline_stddev:.2f}, "
                f"Current Mean: {entry.current_mean:.2f}, Current StdDev: {entry.current_stddev:.2f}"
            )

    def detect_anomalies(self, samples_by_metric: SampleWindow, threshold: float) -> List[Anomaly]:
        """
        Score every sample against its metric baseline.

        Returns anomalies in metric order, then sample order. Every computed
        z-score is kept in self.z_scores until the next call.

        Raises:
            BaselineNotInitializedError: initialize_baseline has never run
            ValueError: threshold is negative or not finite
        """
        if not self.initialized:
            raise BaselineNotInitializedError("baseline not initialised")

        detector = ZScoreDetector(threshold=threshold)
        anomalies: List[Anomaly] = []
        self.z_scores = {}

        for metric_id, samples in samples_by_metric.items():
            baseline = self.stats.get(metric_id)
            if baseline is None:
                logger.info(f"No baseline stats for metric: {metric_id}. Skipping...")
                continue

            logger.debug(f"Detecting anomalies for metric: {metric_id}...")
            for sample in samples:
                zscore = detector.compute(sample.value, baseline)
                self.z_scores[zscore_key(sample)] = zscore
                if detector.is_anomalous(zscore):
                    anomalies.append(
                        Anomaly(
                            metric_id=metric_id,
                            value=sample.value,
                            timestamp=sample.timestamp,
                            z_score=zscore,
                            message=f"Value deviates significantly from the mean (Z-score: {zscore:.2f})",
                        )
                    )

        for key, zscore in self.z_scores.items():
            logger.debug(f"Z-score for {key}: {zscore:.2f}")

        logger.info(f"{len(anomalies)} anomalies detected.")
        return anomalies

"""
Polling driver.

Owns one StatisticsEngine, one MetricsSource and one reporter. Cycles run
strictly one after another: fetch the recent window, update current stats,
detect, report, then wait for the next tick. A cycle that overruns its tick
delays the next one; cycles never overlap.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from metric_sentinel.anomaly.engine import StatisticsEngine
from metric_sentinel.anomaly.schema import Anomaly
from metric_sentinel.core.config import MonitorConfig
from metric_sentinel.core.exceptions import BackendError, BaselineNotInitializedError
from metric_sentinel.data.sources import MetricsSource

from .reporting import AnomalyReporter, LogLineReporter

logger = logging.getLogger(__name__)

Window = Tuple[datetime, datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CycleResult:
    """
    Outcome of one polling cycle.

    skipped is True when the cycle was abandoned (backend failure or missing
    baseline). A backend failure leaves engine state untouched.
    """

    started_at: datetime
    anomalies: List[Anomaly] = field(default_factory=list)
    skipped: bool = False
    reason: Optional[str] = None


class MonitorService:
    """
    Baseline-then-poll driver.

    Args:
        config: Validated monitor configuration
        source: Metrics backend
        reporter: Anomaly sink (stdout lines by default)
        engine: Pre-built engine; a fresh one honoring
            config.unknown_metric_policy by default
        clock: Wall clock returning aware UTC datetimes
        timer: Monotonic timer used for tick scheduling
        sleep: Blocking sleep
    """

    def __init__(
        self,
        config: MonitorConfig,
        source: MetricsSource,
        reporter: Optional[AnomalyReporter] = None,
        engine: Optional[StatisticsEngine] = None,
        clock: Callable[[], datetime] = utc_now,
        timer: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.source = source
        self.reporter = reporter or LogLineReporter()
        self.engine = engine or StatisticsEngine(unknown_metric_policy=config.unknown_metric_policy)
        self.clock = clock
        self.timer = timer
        self.sleep = sleep
        self.baseline_at: Optional[datetime] = None

    def baseline_window(self, now: datetime) -> Window:
        return now - timedelta(days=self.config.baseline_duration), now

    def recent_window(self, now: datetime) -> Window:
        return now - timedelta(minutes=self.config.recent_duration), now

    def initialize(self) -> None:
        """
        Fetch the historical window and build baselines.

        Raises:
            BackendError: the historical window could not be fetched
        """
        now = self.clock()
        start, end = self.baseline_window(now)
        logger.info(f"Fetching historical metrics for project {self.config.project_id or '-'}...")
        window = self.source.fetch_window(self.config.metrics, start, end, self.config.filters)
        self.engine.initialize_baseline(window)
        self.baseline_at = now

    def refresh_due(self, now: datetime) -> bool:
        hours = self.config.baseline_refresh_hours
        if hours is None or self.baseline_at is None:
            return False
        return now - self.baseline_at >= timedelta(hours=hours)

    def _refresh_baseline(self) -> None:
        logger.info("Refreshing baseline...")
        try:
            self.initialize()
        except BackendError as e:
            logger.error(f"Baseline refresh failed, keeping previous baseline: {e}")

    def run_cycle(self) -> CycleResult:
        """
        One fetch-update-detect-report pass. Never raises BackendError.
        """
        now = self.clock()
        result = CycleResult(started_at=now)

        if self.refresh_due(now):
            self._refresh_baseline()

        start, end = self.recent_window(now)
        logger.info("Fetching recent metrics...")
        try:
            window = self.source.fetch_window(self.config.metrics, start, end, self.config.filters)
        except BackendError as e:
            logger.error(f"Failed to fetch recent metrics: {e}")
            result.skipped = True
            result.reason = str(e)
            return result

        self.engine.update_current_window(window)

        try:
            anomalies = self.engine.detect_anomalies(window, self.config.z_score_threshold)
        except BaselineNotInitializedError as e:
            logger.error(f"Failed to detect anomalies: {e}")
            result.skipped = True
            result.reason = str(e)
            return result

        self.reporter.report(anomalies)
        result.anomalies = anomalies
        return result

    def run_forever(self, max_cycles: Optional[int] = None) -> int:
        """
        Run cycles on a fixed interval. Returns the number of cycles run.

        The first cycle runs immediately.
        """
        interval = float(self.config.polling_time)
        logger.info(f"Starting polling every {interval:g}s...")

        cycles = 0
        next_tick = self.timer()
        while max_cycles is None or cycles < max_cycles:
            self.run_cycle()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break

            next_tick += interval
            delay = next_tick - self.timer()
            if delay > 0:
                self.sleep(delay)
            else:
                logger.warning(f"Cycle overran the polling interval by {-delay:.1f}s")
                next_tick = self.timer()

        return cycles

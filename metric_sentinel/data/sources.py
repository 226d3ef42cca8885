"""
Metrics sources: where samples come from.

Every backend implements MetricsSource.fetch for one metric over a half-open
window [start, end). Sources return MetricSample objects in whatever order the
backend yields them; the statistics engine does not depend on ordering.

Design:
- fetch() is the only backend-specific method
- fetch_window() fans out over the configured metrics and fails as a whole
- Backend failures are raised as BackendError, never swallowed
"""

import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from metric_sentinel.core.exceptions import BackendError
from metric_sentinel.data.schema import MetricSample, SamplesByMetric

logger = logging.getLogger(__name__)


def in_window(timestamp: datetime, start: datetime, end: datetime) -> bool:
    """True when start <= timestamp < end."""
    return start <= timestamp < end


def make_sample(metric_id: str, value: float, timestamp: datetime) -> Optional[MetricSample]:
    """
    Build a MetricSample, or None for non-finite values.
    """
    value = float(value)
    if not math.isfinite(value):
        logger.debug(f"Dropping non-finite point for {metric_id} at {timestamp}")
        return None
    return MetricSample(metric_id=metric_id, value=value, timestamp=timestamp)


class MetricsSource(ABC):
    """
    Abstract base class for metrics backends.
    """

    name: str = "source"

    @abstractmethod
    def fetch(
        self,
        metric_id: str,
        start: datetime,
        end: datetime,
        filter_expression: Optional[str] = None,
    ) -> List[MetricSample]:
        """
        Fetch samples of one metric over [start, end).

        Raises:
            BackendError: transport, auth, or query failure
        """

    def fetch_window(
        self,
        metric_ids: Iterable[str],
        start: datetime,
        end: datetime,
        filters: Optional[Dict[str, str]] = None,
    ) -> SamplesByMetric:
        """
        Fetch every metric over the same window.

        Returns one entry per requested metric (empty lists included), in the
        order requested. Any single failure aborts the whole window.
        """
        filters = filters or {}
        logger.info(
            f"Fetching metrics from {self.name} between "
            f"{start.isoformat()} and {end.isoformat()}"
        )

        window: SamplesByMetric = {}
        for metric_id in metric_ids:
            logger.debug(f"Fetching data for metric: {metric_id}")
            try:
                samples = self.fetch(metric_id, start, end, filters.get(metric_id))
            except BackendError:
                logger.error(f"Failed to fetch data for metric {metric_id}")
                raise
            window[metric_id] = samples
            logger.debug(f"Fetched {len(samples)} points for metric: {metric_id}")

        return window

    def close(self) -> None:
        """Release backend resources. Default is a no-op."""


class CsvReplaySource(MetricsSource):
    """
    Replays samples from a CSV file.

    Useful for dry runs and offline evaluation against exported data.

    Example:
        metric,value,timestamp
        custom.googleapis.com/latency,101.5,2025-02-07T10:30:00Z
        custom.googleapis.com/latency,99.0,2025-02-07T10:31:00Z

    The file is read once; filter expressions are not supported.
    """

    name = "csv"
    required_columns = ("metric", "value", "timestamp")

    def __init__(self, filepath: Union[str, Path]):
        self.filepath = Path(filepath)
        self._frame = self._load()

    def _load(self) -> pd.DataFrame:
        if not self.filepath.exists():
            raise BackendError(f"Replay file not found: {self.filepath}")

        try:
            frame = pd.read_csv(self.filepath)
        except (OSError, ValueError) as e:
            raise BackendError(f"Failed to read replay file {self.filepath}: {e}") from e

        missing = [c for c in self.required_columns if c not in frame.columns]
        if missing:
            raise BackendError(f"Replay file {self.filepath} missing columns: {', '.join(missing)}")

        frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True, errors="coerce")
        frame["value"] = pd.to_numeric(frame["value"], errors="coerce")
        bad_rows = frame["timestamp"].isna() | frame["value"].isna()
        if bad_rows.any():
            logger.warning(f"Skipping {int(bad_rows.sum())} malformed rows in {self.filepath}")
        frame = frame.loc[~bad_rows]

        logger.info(f"Loaded {len(frame)} replay rows from {self.filepath}")
        return frame

    def fetch(
        self,
        metric_id: str,
        start: datetime,
        end: datetime,
        filter_expression: Optional[str] = None,
    ) -> List[MetricSample]:
        if filter_expression:
            logger.debug(f"Ignoring filter for {metric_id}; csv source has no filter support")

        start_ts = pd.Timestamp(start.astimezone(timezone.utc))
        end_ts = pd.Timestamp(end.astimezone(timezone.utc))
        frame = self._frame
        rows = frame[
            (frame["metric"] == metric_id)
            & (frame["timestamp"] >= start_ts)
            & (frame["timestamp"] < end_ts)
        ]

        samples: List[MetricSample] = []
        for value, ts in zip(rows["value"], rows["timestamp"]):
            sample = make_sample(metric_id, value, ts.to_pydatetime())
            if sample is not None:
                samples.append(sample)
        return samples

"""
Data module: sample schema and metrics sources.

Pipeline:

    Metrics backend (Cloud Monitoring / Prometheus / CSV replay)
        ↓
    MetricsSource.fetch_window (metric_sentinel/data/sources.py)
        ↓
    MetricSample lists grouped by metric id
        ↓
    Ready for the statistics engine (metric_sentinel/anomaly)

Backend-specific sources live in their own modules and are imported on demand
by build_source.
"""

from metric_sentinel.data.factory import build_source
from metric_sentinel.data.schema import MetricSample, SamplesByMetric
from metric_sentinel.data.sources import CsvReplaySource, MetricsSource

__all__ = [
    "build_source",
    "MetricSample",
    "SamplesByMetric",
    "CsvReplaySource",
    "MetricsSource",
]

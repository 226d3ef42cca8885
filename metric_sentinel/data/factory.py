"""
Builds the configured metrics source.
"""

from __future__ import annotations

from metric_sentinel.core.config import MonitorConfig, SourceKind
from metric_sentinel.core.exceptions import ConfigurationError
from metric_sentinel.data.sources import CsvReplaySource, MetricsSource


def build_source(config: MonitorConfig) -> MetricsSource:
    """
    Instantiate the metrics source named by config.source.

    Backend modules are imported on demand so that a csv dry run does not need
    cloud credentials.
    """
    if config.source == SourceKind.CLOUD_MONITORING:
        from metric_sentinel.data.cloud_monitoring import CloudMonitoringSource

        return CloudMonitoringSource(config.project_id, timeout=config.request_timeout)

    if config.source == SourceKind.PROMETHEUS:
        from metric_sentinel.data.prometheus import PrometheusSource

        return PrometheusSource(
            config.prometheus_url,
            step=config.prometheus_step,
            timeout=config.request_timeout,
        )

    if config.source == SourceKind.CSV:
        return CsvReplaySource(config.csv_path)

    raise ConfigurationError(f"Unknown metrics source: {config.source}")

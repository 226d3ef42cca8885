"""
Google Cloud Monitoring metrics source.

Queries list_time_series on projects/<project_id> with a filter of the form
metric.type="<metric>" [AND <extra filter>]. All time series returned for a
metric are merged into one sample list.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import monitoring_v3

from metric_sentinel.core.exceptions import BackendError
from metric_sentinel.data.schema import MetricSample
from metric_sentinel.data.sources import MetricsSource, in_window, make_sample

logger = logging.getLogger(__name__)

NUMERIC_KINDS = ("double_value", "int64_value", "bool_value")


def build_filter(metric_id: str, filter_expression: Optional[str] = None) -> str:
    """Cloud Monitoring filter string for one metric."""
    filter_string = f'metric.type="{metric_id}"'
    if filter_expression:
        filter_string = f"{filter_string} AND {filter_expression}"
    return filter_string


def point_value(value: monitoring_v3.TypedValue) -> Optional[float]:
    """
    Numeric value of a TypedValue.

    Distribution points contribute their mean. String points have no numeric
    reading and yield None.
    """
    raw = monitoring_v3.TypedValue.pb(value)
    kind = raw.WhichOneof("value")
    if kind in NUMERIC_KINDS:
        return float(getattr(raw, kind))
    if kind == "distribution_value":
        return float(raw.distribution_value.mean)
    return None


class CloudMonitoringSource(MetricsSource):
    """
    Metrics source backed by the Cloud Monitoring API.

    Args:
        project_id: GCP project hosting the metrics
        client: Optional pre-built MetricServiceClient (tests inject a fake)
        timeout: Per-request timeout in seconds
    """

    name = "cloud_monitoring"

    def __init__(self, project_id: str, client: Any = None, timeout: float = 30.0):
        self.project_id = project_id
        self.timeout = timeout
        if client is None:
            logger.info("Creating monitoring client...")
            try:
                client = monitoring_v3.MetricServiceClient()
            except auth_exceptions.GoogleAuthError as e:
                raise BackendError(f"Failed to create monitoring client: {e}") from e
        self.client = client

    @property
    def project_name(self) -> str:
        return f"projects/{self.project_id}"

    def fetch(
        self,
        metric_id: str,
        start: datetime,
        end: datetime,
        filter_expression: Optional[str] = None,
    ) -> List[MetricSample]:
        interval = monitoring_v3.TimeInterval(
            {
                "start_time": {"seconds": int(start.timestamp())},
                "end_time": {"seconds": int(end.timestamp())},
            }
        )
        request = {
            "name": self.project_name,
            "filter": build_filter(metric_id, filter_expression),
            "interval": interval,
            "view": monitoring_v3.ListTimeSeriesRequest.TimeSeriesView.FULL,
        }

        samples: List[MetricSample] = []
        try:
            for series in self.client.list_time_series(request=request, timeout=self.timeout):
                for point in series.points:
                    value = point_value(point.value)
                    if value is None:
                        continue
                    timestamp = point.interval.end_time
                    if not in_window(timestamp, start, end):
                        continue
                    sample = make_sample(metric_id, value, timestamp)
                    if sample is not None:
                        samples.append(sample)
        except api_exceptions.GoogleAPIError as e:
            raise BackendError(f"Could not list time series for {metric_id}: {e}") from e

        return samples

    def close(self) -> None:
        transport = getattr(self.client, "transport", None)
        if transport is not None and hasattr(transport, "close"):
            transport.close()

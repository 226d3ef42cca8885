"""
Prometheus-compatible metrics source (Prometheus, Mimir, VictoriaMetrics).

Uses the range query API: GET <base_url>/api/v1/query_range.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from metric_sentinel.core.exceptions import BackendError
from metric_sentinel.data.schema import MetricSample
from metric_sentinel.data.sources import MetricsSource, in_window, make_sample

logger = logging.getLogger(__name__)

QUERY_RANGE_PATH = "/api/v1/query_range"


def build_query(metric_id: str, filter_expression: Optional[str] = None) -> str:
    """
    Selector for one metric; the filter is a label matcher list.

    >>> build_query("http_requests_total", 'job="api"')
    'http_requests_total{job="api"}'
    """
    if filter_expression:
        return f"{metric_id}{{{filter_expression}}}"
    return metric_id


class PrometheusSource(MetricsSource):
    """
    Metrics source backed by a Prometheus HTTP API.

    Args:
        base_url: API root, e.g. http://prometheus:9090
        step: Query resolution step (e.g. "60s")
        timeout: Request timeout in seconds
        headers: Extra headers applied to every request
        client: Optional httpx.Client (tests inject a MockTransport client)
    """

    name = "prometheus"

    def __init__(
        self,
        base_url: str,
        step: str = "60s",
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = str(base_url).rstrip("/")
        self.step = step
        self.timeout = timeout
        self.headers = headers or {}
        self.client = client or httpx.Client(timeout=timeout)

    @property
    def query_url(self) -> str:
        return f"{self.base_url}{QUERY_RANGE_PATH}"

    def _query_range(self, query: str, start: datetime, end: datetime) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "query": query,
            "start": start.timestamp(),
            "end": end.timestamp(),
            "step": self.step,
        }
        try:
            resp = self.client.get(self.query_url, params=params, headers=self.headers)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as e:
            raise BackendError(
                f"Prometheus query failed [{e.response.status_code}]: {e.response.text}"
            ) from e
        except httpx.TimeoutException as e:
            raise BackendError("Prometheus query timed out") from e
        except httpx.RequestError as e:
            raise BackendError(f"Cannot reach Prometheus at {self.query_url}") from e
        except ValueError as e:
            raise BackendError(f"Prometheus returned a non-JSON body: {e}") from e

        if not isinstance(payload, dict):
            raise BackendError(f"Prometheus returned a {type(payload).__name__} body, expected an object")
        if payload.get("status") != "success":
            raise BackendError(f"Prometheus query error: {payload.get('error', 'unknown error')}")

        data = payload.get("data") or {}
        if not isinstance(data, dict) or not isinstance(data.get("result", []), list):
            raise BackendError("Prometheus returned a malformed data section")
        return data

    def fetch(
        self,
        metric_id: str,
        start: datetime,
        end: datetime,
        filter_expression: Optional[str] = None,
    ) -> List[MetricSample]:
        data = self._query_range(build_query(metric_id, filter_expression), start, end)

        samples: List[MetricSample] = []
        for series in data.get("result", []):
            values = series.get("values", []) if isinstance(series, dict) else None
            if not isinstance(values, list):
                raise BackendError(f"Prometheus returned a malformed series for {metric_id}: {series!r}")

            for point in values:
                try:
                    raw_ts, raw_value = point
                    value = float(raw_value)
                    timestamp = datetime.fromtimestamp(float(raw_ts), tz=timezone.utc)
                except (TypeError, ValueError, OverflowError, OSError):
                    logger.warning(f"Malformed point for {metric_id}: {point!r}")
                    continue
                if not in_window(timestamp, start, end):
                    continue
                sample = make_sample(metric_id, value, timestamp)
                if sample is not None:
                    samples.append(sample)
        return samples

    def close(self) -> None:
        self.client.close()

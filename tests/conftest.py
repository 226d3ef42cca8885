"""
Pytest configuration and shared fixtures.

Provides sample builders, a monitor configuration, and an in-memory metrics
source for unit and integration tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from metric_sentinel.core.config import MonitorConfig
from metric_sentinel.core.exceptions import BackendError
from metric_sentinel.data.schema import MetricSample
from metric_sentinel.data.sources import MetricsSource, in_window

CPU = "compute.googleapis.com/instance/cpu/utilization"
LATENCY = "custom.googleapis.com/latency"


def make_samples(metric_id: str, values: List[float], start: datetime, step_seconds: int = 60) -> List[MetricSample]:
    return [
        MetricSample(metric_id=metric_id, value=v, timestamp=start + timedelta(seconds=i * step_seconds))
        for i, v in enumerate(values)
    ]


class FakeSource(MetricsSource):
    """
    In-memory metrics source.

    Serves stored samples by window; set fail=True to simulate a backend outage.
    """

    name = "fake"

    def __init__(self, samples: Optional[Dict[str, List[MetricSample]]] = None):
        self.samples = samples or {}
        self.fail = False
        self.calls: List[tuple] = []
        self.closed = False

    def add(self, samples: List[MetricSample]) -> None:
        for sample in samples:
            self.samples.setdefault(sample.metric_id, []).append(sample)

    def fetch(self, metric_id, start, end, filter_expression=None):
        self.calls.append((metric_id, start, end, filter_expression))
        if self.fail:
            raise BackendError("backend unavailable")
        return [s for s in self.samples.get(metric_id, []) if in_window(s.timestamp, start, end)]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 2, 7, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def monitor_config() -> MonitorConfig:
    return MonitorConfig(
        metrics=[CPU, LATENCY],
        polling_time=60,
        project_id="test-project",
        baseline_duration=7,
        recent_duration=10,
        filters={CPU: 'resource.labels.zone="europe-west1-b"'},
        z_score_threshold=3.0,
    )


def pytest_configure(config):
    """
    Pytest hook for custom configuration.

    Registers custom markers used throughout tests.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


@pytest.fixture
def samples():
    """Builder: samples(metric_id, values, start, step_seconds=60)."""
    return make_samples

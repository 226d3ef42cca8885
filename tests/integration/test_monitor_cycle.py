"""
Integration tests for the polling driver and CLI.

Runs full baseline -> update -> detect -> report cycles against in-memory and
CSV sources.
"""

import io
import logging
from datetime import datetime, timedelta, timezone

import pytest

from metric_sentinel import cli
from metric_sentinel.anomaly.engine import StatisticsEngine
from metric_sentinel.core.config import UnknownMetricPolicy
from metric_sentinel.monitor.reporting import LogLineReporter
from metric_sentinel.monitor.service import MonitorService

CPU = "compute.googleapis.com/instance/cpu/utilization"
LATENCY = "custom.googleapis.com/latency"


class FakeClock:
    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger("metric_sentinel")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def clock(now):
    return FakeClock(now)


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def service(monitor_config, fake_source, samples, now, clock, stream):
    # CPU baseline: mean 100, stddev 10. LATENCY has no history.
    fake_source.add(samples(CPU, [90.0, 110.0] * 50, now - timedelta(days=3), step_seconds=600))
    return MonitorService(
        monitor_config,
        fake_source,
        reporter=LogLineReporter(stream=stream),
        clock=clock,
    )


def test_initialize_uses_baseline_window(service, fake_source, now):
    service.initialize()

    assert service.engine.initialized
    assert service.engine.get(CPU).baseline_mean == 100.0
    assert service.engine.get(LATENCY) is None
    metric_id, start, end, filter_expression = fake_source.calls[0]
    assert metric_id == CPU
    assert end - start == timedelta(days=7)
    assert end == now
    assert filter_expression == 'resource.labels.zone="europe-west1-b"'


def test_cycle_reports_anomalies(service, fake_source, samples, now, stream):
    service.initialize()
    fake_source.add(samples(CPU, [131.0, 100.0], now - timedelta(minutes=5)))
    fake_source.add(samples(LATENCY, [5.0], now - timedelta(minutes=5)))

    result = service.run_cycle()

    assert not result.skipped
    assert [a.value for a in result.anomalies] == [131.0]
    assert service.engine.get(CPU).current_mean == 115.5
    assert "Anomaly detected: " + CPU in stream.getvalue()
    _, start, end, _ = fake_source.calls[-1]
    assert end - start == timedelta(minutes=10)


def test_backend_failure_skips_cycle_without_touching_state(service, fake_source, samples, now, stream):
    service.initialize()
    fake_source.add(samples(CPU, [95.0, 105.0], now - timedelta(minutes=5)))
    service.run_cycle()
    before = service.engine.snapshot()

    fake_source.fail = True
    result = service.run_cycle()

    assert result.skipped
    assert "backend unavailable" in result.reason
    assert service.engine.snapshot() == before
    assert stream.getvalue() == ""


def test_cycle_before_initialization_is_skipped(service):
    result = service.run_cycle()

    assert result.skipped
    assert result.anomalies == []


def test_baseline_is_single_shot_by_default(service, fake_source, clock):
    service.initialize()
    clock.advance(days=30)
    service.run_cycle()

    baseline_calls = [c for c in fake_source.calls if c[2] - c[1] == timedelta(days=7)]
    assert len(baseline_calls) == 2  # one per metric, at startup only


def test_baseline_refresh_when_configured(monitor_config, fake_source, samples, now, clock, stream):
    config = monitor_config.model_copy(update={"baseline_refresh_hours": 24.0})
    fake_source.add(samples(CPU, [90.0, 110.0], now - timedelta(days=1)))
    service = MonitorService(config, fake_source, reporter=LogLineReporter(stream=stream), clock=clock)
    service.initialize()

    clock.advance(hours=25)
    fake_source.add(samples(LATENCY, [1.0, 3.0], clock.current - timedelta(hours=1)))
    service.run_cycle()

    assert service.baseline_at == clock.current
    assert service.engine.get(LATENCY).baseline_mean == 2.0


def test_failed_refresh_keeps_previous_baseline(monitor_config, fake_source, samples, now, clock, stream):
    config = monitor_config.model_copy(update={"baseline_refresh_hours": 1.0})
    fake_source.add(samples(CPU, [90.0, 110.0], now - timedelta(days=1)))
    service = MonitorService(config, fake_source, reporter=LogLineReporter(stream=stream), clock=clock)
    service.initialize()

    clock.advance(hours=2)
    fake_source.fail = True
    result = service.run_cycle()

    assert result.skipped
    assert service.engine.get(CPU).baseline_mean == 100.0
    assert service.baseline_at == now


def test_run_forever_keeps_fixed_interval(service):
    ticks = {"t": 0.0}
    sleeps = []

    def timer():
        return ticks["t"]

    def sleep(seconds):
        sleeps.append(seconds)
        ticks["t"] += seconds

    service.timer = timer
    service.sleep = sleep
    service.initialize()

    cycles = service.run_forever(max_cycles=3)

    assert cycles == 3
    assert sleeps == [60.0, 60.0]


def test_run_forever_overrun_delays_next_cycle(service):
    ticks = {"t": 0.0}
    sleeps = []
    original = service.run_cycle

    def slow_cycle():
        ticks["t"] += 90.0
        return original()

    service.timer = lambda: ticks["t"]
    service.sleep = lambda seconds: sleeps.append(seconds)
    service.run_cycle = slow_cycle
    service.initialize()

    assert service.run_forever(max_cycles=2) == 2
    assert sleeps == []


def test_engine_policy_follows_config(monitor_config, fake_source):
    config = monitor_config.model_copy(update={"unknown_metric_policy": UnknownMetricPolicy.MATERIALIZE})
    service = MonitorService(config, fake_source)
    assert service.engine.unknown_metric_policy == UnknownMetricPolicy.MATERIALIZE

    engine = StatisticsEngine()
    assert MonitorService(monitor_config, fake_source, engine=engine).engine is engine


CONFIG_TEMPLATE = """
metrics:
  - {metric}
polling_time: 60
recent_duration: 10
baseline_duration: 7
z_score_threshold: 3.0
source: csv
csv_path: {csv_path}
report_jsonl_path: {jsonl_path}
"""


def test_cli_single_cycle_with_csv_source(tmp_path, monkeypatch, capsys):
    now = datetime.now(timezone.utc).replace(microsecond=0)
    rows = ["metric,value,timestamp"]
    for i in range(1, 101):
        value = 90.0 if i % 2 else 110.0
        rows.append(f"{LATENCY},{value},{(now - timedelta(hours=i)).isoformat()}")
    rows.append(f"{LATENCY},500.0,{(now - timedelta(minutes=2)).isoformat()}")
    csv_path = tmp_path / "replay.csv"
    csv_path.write_text("\n".join(rows) + "\n", encoding="utf-8")

    jsonl_path = tmp_path / "anomalies.jsonl"
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        CONFIG_TEMPLATE.format(metric=LATENCY, csv_path=csv_path, jsonl_path=jsonl_path),
        encoding="utf-8",
    )
    monkeypatch.setattr(cli.settings, "logs_dir", tmp_path / "logs")

    exit_code = cli.main(["--config", str(config_path), "--once", "--log-level", "WARNING"])

    assert exit_code == cli.EXIT_OK
    assert "with value 500.00" in capsys.readouterr().out
    assert len(jsonl_path.read_text(encoding="utf-8").splitlines()) == 1


def test_cli_config_error_exit_code(tmp_path, monkeypatch):
    monkeypatch.setattr(cli.settings, "logs_dir", tmp_path / "logs")
    bad = tmp_path / "config.yaml"
    bad.write_text("metrics: []\n", encoding="utf-8")

    assert cli.main(["--config", str(bad), "--once"]) == cli.EXIT_CONFIG


def test_cli_backend_error_exit_code(tmp_path, monkeypatch):
    monkeypatch.setattr(cli.settings, "logs_dir", tmp_path / "logs")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        CONFIG_TEMPLATE.format(metric=LATENCY, csv_path=tmp_path / "missing.csv", jsonl_path=tmp_path / "a.jsonl"),
        encoding="utf-8",
    )

    assert cli.main(["--config", str(config_path), "--once"]) == cli.EXIT_BACKEND

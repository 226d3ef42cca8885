"""
Configuration for metric-sentinel.

Two layers:
- Settings: process-level settings from the environment (log level, log
  directory, default config path), loaded with pydantic-settings.
- MonitorConfig: the YAML document that enumerates monitored metrics, windows,
  polling interval, backend and z-score threshold.
"""

from __future__ import annotations

import math
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_BASELINE_DAYS = 7


class SourceKind(str, Enum):
    """Supported metrics backends."""

    CLOUD_MONITORING = "cloud_monitoring"
    PROMETHEUS = "prometheus"
    CSV = "csv"


class UnknownMetricPolicy(str, Enum):
    """
    What update_current_window does with a metric that has no baseline entry.

    - ignore: log and skip, no entry is created.
    - materialize: create a zero baseline entry holding the current stats.
    """

    IGNORE = "ignore"
    MATERIALIZE = "materialize"


class MonitorConfig(BaseModel):
    """
    Monitor configuration document.

    Notes:
    - baseline_duration is in days; 0 or missing falls back to 7.
    - recent_duration is in minutes, polling_time in seconds.
    - filters maps a metric id to an extra backend filter expression.
    """

    metrics: List[str] = Field(..., min_length=1)
    polling_time: int = Field(..., gt=0, description="Polling interval in seconds")
    project_id: str = Field("", description="Backend project / namespace identifier")
    baseline_duration: int = Field(DEFAULT_BASELINE_DAYS, ge=0, description="Baseline window in days")
    recent_duration: int = Field(..., gt=0, description="Recent window in minutes")
    filters: Dict[str, str] = Field(default_factory=dict)
    z_score_threshold: float = Field(..., ge=0.0)

    source: SourceKind = SourceKind.CLOUD_MONITORING
    prometheus_url: Optional[str] = None
    prometheus_step: str = "60s"
    csv_path: Optional[Path] = None
    request_timeout: float = Field(30.0, gt=0.0)

    unknown_metric_policy: UnknownMetricPolicy = UnknownMetricPolicy.IGNORE
    baseline_refresh_hours: Optional[float] = Field(None, gt=0.0)
    report_jsonl_path: Optional[Path] = None

    @field_validator("baseline_duration", mode="before")
    @classmethod
    def _default_baseline(cls, value: Any) -> Any:
        if value is None or value == 0:
            return DEFAULT_BASELINE_DAYS
        return value

    @field_validator("metrics")
    @classmethod
    def _unique_metrics(cls, value: List[str]) -> List[str]:
        if any(not m.strip() for m in value):
            raise ValueError("metric identifiers must be non-empty")
        if len(set(value)) != len(value):
            raise ValueError("metric identifiers must be unique")
        return value

    @field_validator("z_score_threshold")
    @classmethod
    def _finite_threshold(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("z_score_threshold must be finite")
        return value

    @model_validator(mode="after")
    def _check_backend(self) -> "MonitorConfig":
        unknown = sorted(set(self.filters) - set(self.metrics))
        if unknown:
            raise ValueError(f"filters reference unmonitored metrics: {', '.join(unknown)}")
        if self.source == SourceKind.CLOUD_MONITORING and not self.project_id:
            raise ValueError("project_id is required for the cloud_monitoring source")
        if self.source == SourceKind.PROMETHEUS and not self.prometheus_url:
            raise ValueError("prometheus_url is required for the prometheus source")
        if self.source == SourceKind.CSV and self.csv_path is None:
            raise ValueError("csv_path is required for the csv source")
        return self


def load_monitor_config(path: Union[str, Path]) -> MonitorConfig:
    """
    Load and validate a YAML monitor configuration.

    Raises:
        ConfigurationError: file unreadable, YAML malformed, or validation fails
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Malformed YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")

    try:
        return MonitorConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e


class Settings(BaseSettings):
    """
    Process settings with environment overrides.
    """

    model_config = SettingsConfigDict(env_prefix="SENTINEL_", env_file=".env", extra="ignore")

    log_level: str = Field("INFO", description="Default logging level")
    logs_dir: Path = Field(Path("logs"), description="Directory for log files")
    config_path: Path = Field(Path("config.yaml"), description="Monitor configuration file")


settings = Settings()

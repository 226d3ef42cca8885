"""
Schema definitions for baseline statistics and anomalies.

All anomaly outputs are deterministic and explainable. Each anomaly references
its observed value and the z-score computed against the metric baseline.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BaselineStats(BaseModel):
    """
    Statistics for a single metric.

    Fields:
    - baseline_mean/baseline_stddev: from the historical window, set at
      initialization
    - current_mean/current_stddev: from the latest recent window, overwritten
      every cycle
    - baseline_count/current_count: number of points each pair was computed from

    Standard deviations are population standard deviations (>= 0). A zero
    baseline_stddev is legal and marks a zero-variance metric.
    """

    model_config = ConfigDict(validate_assignment=True)

    baseline_mean: float
    baseline_stddev: float = Field(ge=0.0)
    current_mean: float = 0.0
    current_stddev: float = Field(0.0, ge=0.0)
    baseline_count: int = Field(0, ge=0)
    current_count: int = Field(0, ge=0)

    @property
    def zero_variance(self) -> bool:
        return self.baseline_stddev == 0.0


class Anomaly(BaseModel):
    """
    A sample that deviates from its metric baseline.

    Fields:
    - metric_id: metric the sample belongs to
    - value: observed value
    - timestamp: sample timestamp
    - z_score: standardized deviation; +/-inf against a zero-variance baseline
    - message: human-readable explanation embedding the z-score

    In JSON output a non-finite z_score is written as null.
    """

    model_config = ConfigDict(ser_json_inf_nan="null")

    metric_id: str
    value: float
    timestamp: datetime
    z_score: float
    message: str

    def render(self) -> str:
        return (
            f"Anomaly detected: {self.metric_id} at {self.timestamp.isoformat()} "
            f"with value {self.value:.2f} - {self.message}"
        )

"""
Canonical internal sample schema for the anomaly detection pipeline.

Every metrics backend converts its native points to MetricSample before they
reach the statistics engine.

Design rationale:
- Minimal fields (only what's needed for baseline statistics)
- All timestamps in UTC for consistency
- Immutable once produced
"""

from datetime import datetime, timezone
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MetricSample(BaseModel):
    """
    Canonical representation of a single metric observation.

    Attributes:
        metric_id: Metric / time-series identifier (e.g. a dotted metric type)
        value: Observed measurement
        timestamp: UTC end of the sampling interval the value applies to

    Notes:
        - Non-finite values are rejected; sources drop such points
        - Naive timestamps are interpreted as UTC
    """

    model_config = ConfigDict(frozen=True)

    metric_id: str = Field(
        ...,
        min_length=1,
        description="Metric identifier"
    )

    value: float = Field(
        ...,
        allow_inf_nan=False,
        description="Observed value"
    )

    timestamp: datetime = Field(
        ...,
        description="UTC end of the sampling interval"
    )

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


SamplesByMetric = Dict[str, List[MetricSample]]

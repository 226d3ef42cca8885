"""
Monitor module: polling driver and anomaly reporting.
"""

from .reporting import (
    AnomalyReporter,
    JsonLinesReporter,
    LogLineReporter,
    MultiReporter,
    build_reporter,
)
from .service import CycleResult, MonitorService

__all__ = [
    "AnomalyReporter",
    "JsonLinesReporter",
    "LogLineReporter",
    "MultiReporter",
    "build_reporter",
    "CycleResult",
    "MonitorService",
]

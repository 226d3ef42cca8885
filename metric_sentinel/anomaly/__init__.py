"""
Anomaly module: per-metric baselines and z-score detection.

Implements deterministic baselines, the z-score detector, and anomaly records.
"""

from .baselines import WindowSummary, summarize, summarize_values
from .detectors import ZScoreDetector
from .engine import StatisticsEngine
from .schema import Anomaly, BaselineStats

__all__ = [
    "StatisticsEngine",
    "Anomaly",
    "BaselineStats",
    "WindowSummary",
    "summarize",
    "summarize_values",
    "ZScoreDetector",
]

"""
Core module: Configuration, logging, and exception handling.
"""

from .config import (
    MonitorConfig,
    Settings,
    SourceKind,
    UnknownMetricPolicy,
    load_monitor_config,
    settings,
)
from .exceptions import (
    AnomalyDetectionError,
    BackendError,
    BaselineNotInitializedError,
    ConfigurationError,
    SentinelError,
)

__all__ = [
    "MonitorConfig",
    "Settings",
    "SourceKind",
    "UnknownMetricPolicy",
    "load_monitor_config",
    "settings",
    "AnomalyDetectionError",
    "BackendError",
    "BaselineNotInitializedError",
    "ConfigurationError",
    "SentinelError",
]

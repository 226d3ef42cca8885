"""
Custom exceptions for metric-sentinel.

These exceptions provide clear error semantics across the system.
Use them to distinguish between configuration problems, metrics backend
failures, and engine contract violations.
"""


class SentinelError(Exception):
    """Base exception for all metric-sentinel failures."""
    pass


class ConfigurationError(SentinelError):
    """Raised when configuration is invalid or missing."""
    pass


class BackendError(SentinelError):
    """Raised when the metrics backend cannot serve a window (network, auth, query)."""
    pass


class AnomalyDetectionError(SentinelError):
    """Base exception for anomaly detection failures."""
    pass


class BaselineNotInitializedError(AnomalyDetectionError):
    """Raised when detection runs before any baseline was initialized."""
    pass

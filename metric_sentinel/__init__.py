"""
metric-sentinel: z-score anomaly alerts on top of an existing metrics backend.
"""

__version__ = "0.1.0"

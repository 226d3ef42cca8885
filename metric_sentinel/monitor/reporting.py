"""
Anomaly reporting sinks.

The engine returns plain Anomaly objects; reporters decide where they go.
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, TextIO, Union

from metric_sentinel.anomaly.schema import Anomaly

logger = logging.getLogger(__name__)


class AnomalyReporter(ABC):
    @abstractmethod
    def report(self, anomalies: Sequence[Anomaly]) -> None:
        """Emit one cycle's anomalies."""


class LogLineReporter(AnomalyReporter):
    """
    Prints one line per anomaly to a stream (stdout by default) and logs it.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def report(self, anomalies: Sequence[Anomaly]) -> None:
        stream = self.stream or sys.stdout
        for anomaly in anomalies:
            line = anomaly.render()
            print(line, file=stream)
            logger.warning(line)


class JsonLinesReporter(AnomalyReporter):
    """
    Appends one JSON object per anomaly to a file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def report(self, anomalies: Sequence[Anomaly]) -> None:
        if not anomalies:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            for anomaly in anomalies:
                f.write(anomaly.model_dump_json() + "\n")
        logger.debug(f"Wrote {len(anomalies)} anomalies to {self.path}")


class MultiReporter(AnomalyReporter):
    def __init__(self, reporters: Iterable[AnomalyReporter]):
        self.reporters: List[AnomalyReporter] = list(reporters)

    def report(self, anomalies: Sequence[Anomaly]) -> None:
        for reporter in self.reporters:
            reporter.report(anomalies)


def build_reporter(jsonl_path: Optional[Union[str, Path]] = None) -> AnomalyReporter:
    """Stdout lines, plus a JSON-lines file when a path is configured."""
    if jsonl_path is None:
        return LogLineReporter()
    return MultiReporter([LogLineReporter(), JsonLinesReporter(jsonl_path)])

"""
Command-line entry point for metric-sentinel.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from metric_sentinel.core.config import load_monitor_config, settings
from metric_sentinel.core.exceptions import BackendError, ConfigurationError
from metric_sentinel.core.logging_config import setup_logging
from metric_sentinel.data.factory import build_source
from metric_sentinel.monitor.reporting import build_reporter
from metric_sentinel.monitor.service import MonitorService

logger = logging.getLogger("metric_sentinel.cli")

EXIT_OK = 0
EXIT_BACKEND = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Z-score anomaly alerts for metric series")
    parser.add_argument("--config", type=Path, default=None, help="Monitor configuration YAML")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument("--log-level", default=None, help="Override SENTINEL_LOG_LEVEL")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    config_path = args.config or settings.config_path
    logger.info(f"Loading configuration from {config_path}...")
    try:
        config = load_monitor_config(config_path)
    except ConfigurationError as e:
        logger.error(f"Failed to load configuration: {e}")
        return EXIT_CONFIG

    try:
        source = build_source(config)
    except BackendError as e:
        logger.error(f"Failed to create metrics source: {e}")
        return EXIT_BACKEND

    service = MonitorService(config, source, reporter=build_reporter(config.report_jsonl_path))
    try:
        service.initialize()
    except BackendError as e:
        logger.error(f"Failed to fetch historical metrics: {e}")
        source.close()
        return EXIT_BACKEND

    try:
        service.run_forever(max_cycles=1 if args.once else None)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down.")
    finally:
        source.close()

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

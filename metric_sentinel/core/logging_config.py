"""
Logging configuration for production use.

Provides structured logging with file and console output.
Integrates with settings for environment-specific log levels.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from .config import settings


def setup_logging(
    logger_name: str = "metric_sentinel",
    level: Optional[str] = None,
    logs_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        logger_name: Name of the logger (the package logger covers every module)
        level: Log level override; defaults to settings.log_level
        logs_dir: Directory for the rotating log file; defaults to settings.logs_dir

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Don't add handlers if logger already configured
    if logger.handlers:
        return logger

    level = (level or settings.log_level).upper()
    logs_dir = Path(logs_dir or settings.logs_dir)
    logger.setLevel(level)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logs_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        logs_dir / f"{logger_name}.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger

"""
logging_config.py — Centralized Logging Configuration for the Order Service

This module configures unified logging behavior for the entire application.
It ensures that the HTTP layer, the consumer thread and the repository log
messages consistently to both console and file.

Features:
    • Combined console and file logging output
    • Process ID tagging for multi-process visibility
    • Reduced verbosity for pika and the SQLAlchemy engine
"""

import logging
import sys

from . import config


def setup_logging(log_file: str = None, level: str = None):
    """
    Configures the global logging system for the application.

    Args:
        log_file (str): Path of the persistent log file. Defaults to `LOG_FILE`.
            An empty string disables file output.
        level (str): Log level name. Defaults to `LOG_LEVEL`.
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s'
    log_file = config.LOG_FILE if log_file is None else log_file

    # Console output (stdout, Docker-compatible)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO),
        format=log_format,
        handlers=handlers,
    )

    # Reduce verbosity from external libraries
    logging.getLogger("pika").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name):
    """
    Returns a logger for a given module name.

    Use this instead of `logging.getLogger()` directly to keep naming consistent.
    """
    return logging.getLogger(name)

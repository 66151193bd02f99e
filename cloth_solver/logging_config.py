"""
Logging configuration for scripts using the package.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """Send records of the ``cloth_solver`` loggers to stdout and optionally a file.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Logging level for the package logger and its handlers.
        log_file: Path of a log file, overwritten on each run.
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")
    package_logger = logging.getLogger("cloth_solver")
    for handler in package_logger.handlers:
        handler.close()
    package_logger.handlers = []
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
    package_logger.setLevel(level)

    package_logger.info("Logging initialized.")

"""
Utility functions for logging handlers
"""

import logging
from typing import Mapping, Optional

from ..logfile import LogFile
from .dated_handler import DatedFileHandler


def create_file_logger(
    name: str,
    log_file: LogFile,
    properties: Optional[Mapping[str, str]] = None,
    formatter: Optional[logging.Formatter] = None,
    level: int = logging.DEBUG,
) -> logging.Logger:
    """
    Create a logger that writes through a DatedFileHandler

    Args:
        name: Logger name
        log_file: Started LogFile the records go to
        properties: Static properties for every record
        formatter: Optional custom formatter
        level: Logger level

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = DatedFileHandler(log_file, properties)

    if formatter:
        handler.setFormatter(formatter)
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    return logger

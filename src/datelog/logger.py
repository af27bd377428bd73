"""
Diagnostic loggers for datelog components
"""

import logging
import sys
from typing import Optional, TextIO

from .config import LoggingConfig
from .formatter import JSONFormatter, PlainTextFormatter

ROOT_LOGGER_NAME = "datelog"

# Library code stays silent unless the application configures output
logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a datelog component, e.g. ``get_logger("scheduler")``"""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    config: Optional[LoggingConfig] = None, stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Send datelog diagnostics to ``stream`` (stderr by default)

    Replaces any handler previously installed by this function, so calling
    it again reconfigures instead of duplicating output.
    """
    config = config or LoggingConfig.from_env()
    root = logging.getLogger(ROOT_LOGGER_NAME)

    for handler in root.handlers[:]:
        if getattr(handler, "_datelog_owned", False):
            root.removeHandler(handler)
            handler.close()

    if config.formatter_type == "json":
        formatter: logging.Formatter = JSONFormatter(config)
    else:
        formatter = PlainTextFormatter(config)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)
    handler._datelog_owned = True
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.log_level.upper()))

    return root

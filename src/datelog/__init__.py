"""
datelog

Date-sharded log file writer: lines tagged with properties land in files
named by a pattern, with background archiving and deletion of aged files.
"""

__version__ = "0.1.0"

from .archive import create_archive, extract_archive
from .async_logfile import AsyncLogFile
from .clock import Clock, MockClock, SystemClock, Ticker
from .config import (
    LoggingConfig,
    RotationConfig,
    get_default_config,
    set_default_config,
)
from .context import (
    get_log_properties,
    property_context,
    set_log_properties,
    update_log_properties,
)
from .exceptions import (
    ArchiveError,
    DatelogError,
    NotStartedError,
    OverArchiveDaysError,
    OverMaxDelayError,
)
from .formatter import JSONFormatter, PlainTextFormatter
from .handlers import DatedFileHandler, create_file_logger
from .logfile import LogFile
from .logger import configure_logging, get_logger
from .pattern import replace_ignore_case, resolve_path
from .scheduler import RotationScheduler

__all__ = [
    # Writer
    "LogFile",
    "AsyncLogFile",
    "RotationScheduler",
    # Configuration
    "RotationConfig",
    "LoggingConfig",
    "get_default_config",
    "set_default_config",
    # Clock
    "Clock",
    "SystemClock",
    "MockClock",
    "Ticker",
    # Paths and archives
    "resolve_path",
    "replace_ignore_case",
    "create_archive",
    "extract_archive",
    # Errors
    "DatelogError",
    "NotStartedError",
    "OverArchiveDaysError",
    "OverMaxDelayError",
    "ArchiveError",
    # logging integration
    "DatedFileHandler",
    "create_file_logger",
    "property_context",
    "get_log_properties",
    "set_log_properties",
    "update_log_properties",
    "configure_logging",
    "get_logger",
    "JSONFormatter",
    "PlainTextFormatter",
]

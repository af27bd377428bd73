"""
logging handler that writes records into a dated LogFile
"""

import logging
from typing import Dict, Mapping, Optional

from ..context import get_log_properties
from ..logfile import LogFile

PROPERTY_PREFIX = "prop_"


class DatedFileHandler(logging.Handler):
    """
    Route log records to per-property, per-day files

    Properties for a record are, from lowest to highest precedence: the
    handler's static properties, those bound with property_context(), and
    record attributes named ``prop_<KEY>`` (``extra={"prop_IP": ip}``).
    The record's creation time picks the day.
    """

    def __init__(
        self,
        log_file: LogFile,
        properties: Optional[Mapping[str, str]] = None,
        close_log_file: bool = False,
    ):
        super().__init__()
        self.log_file = log_file
        self.properties = dict(properties or {})
        self.close_log_file = close_log_file

    def record_properties(self, record: logging.LogRecord) -> Dict[str, str]:
        """Collect the properties for one record"""
        properties = dict(self.properties)
        properties.update(get_log_properties())

        for key, value in record.__dict__.items():
            if key.startswith(PROPERTY_PREFIX) and value is not None:
                properties[key[len(PROPERTY_PREFIX):]] = str(value)

        return properties

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record"""
        try:
            self.log_file.write(
                self.record_properties(record), record.created, self.format(record)
            )
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the handler, and the log file if this handler owns it"""
        if self.close_log_file:
            self.log_file.close()
        super().close()

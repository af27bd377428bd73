"""
Formatters for datelog's diagnostic log records
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from .config import LoggingConfig


def _context_items(record: logging.LogRecord) -> Dict[str, Any]:
    """Collect ``ctx_`` prefixed extras attached to a record"""
    return {
        key[4:]: value
        for key, value in record.__dict__.items()
        if key.startswith("ctx_")
    }


class JSONFormatter(logging.Formatter):
    """One compact JSON object per record"""

    def __init__(self, config: Optional[LoggingConfig] = None):
        super().__init__()
        self.config = config or LoggingConfig()

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.config.include_timestamp:
            log_entry["timestamp"] = datetime.fromtimestamp(
                record.created
            ).isoformat()

        log_entry.update(_context_items(record))

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, separators=(",", ":"), default=str)


class PlainTextFormatter(logging.Formatter):
    """Human readable single line records"""

    def __init__(self, config: Optional[LoggingConfig] = None):
        super().__init__()
        self.config = config or LoggingConfig()

    def format(self, record: logging.LogRecord) -> str:
        parts = []

        if self.config.include_timestamp:
            created = datetime.fromtimestamp(record.created)
            parts.append(f"[{created.isoformat(timespec='milliseconds')}]")

        parts.extend([record.levelname, record.name, record.getMessage()])

        context = _context_items(record)
        if context:
            context_str = ", ".join(f"{k}={v}" for k, v in context.items())
            parts.append(f"({context_str})")

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line

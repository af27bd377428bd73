"""
logging integration for dated log files
"""

from .dated_handler import DatedFileHandler
from .utils import create_file_logger

__all__ = [
    "DatedFileHandler",
    "create_file_logger",
]

"""
Exceptions raised by dated log files
"""


class DatelogError(Exception):
    """Base class for all datelog errors"""


class NotStartedError(DatelogError):
    """Raised when writing to a log file that was never started or already closed"""

    def __init__(self, message: str = "log file not started"):
        super().__init__(message)


class OverArchiveDaysError(DatelogError):
    """Raised when a line's log time falls behind the archive threshold"""

    def __init__(self, log_time, horizon):
        self.log_time = log_time
        self.horizon = horizon
        super().__init__(
            f"log time {log_time.isoformat()} is older than archive horizon "
            f"{horizon.isoformat()}"
        )


class OverMaxDelayError(DatelogError):
    """Raised when a line's log time lags the clock by more than max_delay_days"""

    def __init__(self, log_time, horizon):
        self.log_time = log_time
        self.horizon = horizon
        super().__init__(
            f"log time {log_time.isoformat()} is older than max delay horizon "
            f"{horizon.isoformat()}"
        )


class ArchiveError(DatelogError):
    """Raised when an archive cannot be created or extracted"""

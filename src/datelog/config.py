"""
Configuration for dated log files
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Literal, Optional

FormatterType = Literal["plain", "json"]

DAY_SECONDS = 24 * 60 * 60

DEFAULT_PATTERN = "logs/{APP}/YYYYMMDD/{APP}_YYYYMMDD.log"


@dataclass
class RotationConfig:
    """Naming pattern, retention windows and writer tuning for a LogFile"""

    # Layout, e.g. /var/logs/{APP}/YYYYMMDD/{APP}_YYYYMMDD_{IP}_{ZONE}.log
    pattern: str = DEFAULT_PATTERN

    # Retention, in rotation periods; 0 disables the step
    archive_days: int = 0
    delete_days: int = 0
    max_delay_days: int = 0

    # Writer settings
    flush: bool = True  # fsync once per drained batch
    queue_size: int = 1000
    encoding: str = "utf-8"
    file_mode: int = 0o600

    # Scheduler settings
    rotation_period: float = DAY_SECONDS  # seconds
    stale_periods: int = 2
    compression_level: int = 6

    def __post_init__(self):
        """Validate configuration values"""
        if not self.pattern:
            raise ValueError("pattern must not be empty")
        for name in ("archive_days", "delete_days", "max_delay_days"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.delete_days and self.delete_days <= self.archive_days:
            raise ValueError("delete_days must exceed archive_days")
        if self.queue_size <= 0:
            raise ValueError("queue_size must be positive")
        if self.rotation_period <= 0:
            raise ValueError("rotation_period must be positive")
        if self.stale_periods <= 0:
            raise ValueError("stale_periods must be positive")
        if not 1 <= self.compression_level <= 9:
            raise ValueError("compression_level must be between 1 and 9")

    @property
    def period(self) -> timedelta:
        """The rotation period as a timedelta"""
        return timedelta(seconds=self.rotation_period)

    @classmethod
    def _parse_bool_env(cls, key: str, default: str = "false") -> bool:
        """Parse boolean from environment variable"""
        return os.getenv(key, default).lower() == "true"

    @classmethod
    def from_env(cls) -> "RotationConfig":
        """Create configuration from environment variables"""
        return cls(
            pattern=os.getenv("DATELOG_PATTERN", DEFAULT_PATTERN),
            archive_days=int(os.getenv("DATELOG_ARCHIVE_DAYS", "0")),
            delete_days=int(os.getenv("DATELOG_DELETE_DAYS", "0")),
            max_delay_days=int(os.getenv("DATELOG_MAX_DELAY_DAYS", "0")),
            flush=cls._parse_bool_env("DATELOG_FLUSH", "true"),
            queue_size=int(os.getenv("DATELOG_QUEUE_SIZE", "1000")),
            encoding=os.getenv("DATELOG_ENCODING", "utf-8"),
            rotation_period=float(
                os.getenv("DATELOG_ROTATION_PERIOD", str(DAY_SECONDS))
            ),
            stale_periods=int(os.getenv("DATELOG_STALE_PERIODS", "2")),
            compression_level=int(os.getenv("DATELOG_COMPRESSION_LEVEL", "6")),
        )


@dataclass
class LoggingConfig:
    """Configuration for datelog's own diagnostic output"""

    log_level: str = "INFO"
    formatter_type: FormatterType = "plain"
    include_timestamp: bool = True

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Create configuration from environment variables"""
        formatter_type = os.getenv("DATELOG_LOG_FORMAT", "plain").lower()
        if formatter_type not in ["plain", "json"]:
            formatter_type = "plain"

        return cls(
            log_level=os.getenv("DATELOG_LOG_LEVEL", "INFO"),
            formatter_type=formatter_type,
            include_timestamp=os.getenv("DATELOG_LOG_TIMESTAMP", "true").lower()
            == "true",
        )


_default_config: Optional[RotationConfig] = None


def get_default_config() -> RotationConfig:
    """Get the default configuration instance"""
    global _default_config
    if _default_config is None:
        _default_config = RotationConfig.from_env()
    return _default_config


def set_default_config(config: Optional[RotationConfig]) -> None:
    """Set the default configuration instance"""
    global _default_config
    _default_config = config

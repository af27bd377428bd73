"""
asyncio facade over LogFile
"""

import asyncio
import functools
from typing import Any, Dict, Mapping, Optional

from .clock import Clock
from .config import RotationConfig
from .logfile import LogFile, LogTime
from .scheduler import Archiver


class AsyncLogFile:
    """
    LogFile for coroutines

    Blocking calls (a full queue, close() draining files) run in the
    loop's default executor so they never stall the event loop.
    """

    def __init__(
        self,
        config: Optional[RotationConfig] = None,
        clock: Optional[Clock] = None,
        archiver: Optional[Archiver] = None,
        log_file: Optional[LogFile] = None,
    ):
        self.log_file = log_file or LogFile(config, clock, archiver)

    async def _run_blocking(self, func, *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    async def start(self) -> None:
        """Start the underlying log file"""
        self.log_file.start()

    async def close(self) -> None:
        """Close the underlying log file, waiting for queued lines to be written"""
        await self._run_blocking(self.log_file.close)

    async def write(
        self, properties: Mapping[str, str], log_time: LogTime, line: str
    ) -> None:
        """Async version of LogFile.write"""
        await self._run_blocking(self.log_file.write, properties, log_time, line)

    async def run_rotation(self) -> None:
        await self._run_blocking(self.log_file.run_rotation)

    def get_stats(self) -> Dict[str, Any]:
        return self.log_file.get_stats()

    async def __aenter__(self) -> "AsyncLogFile":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

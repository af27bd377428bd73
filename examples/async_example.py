#!/usr/bin/env python3
"""
Example: writing from coroutines without blocking the event loop
"""

import asyncio
from datetime import datetime

from datelog import AsyncLogFile, RotationConfig


async def sensor(log_file: AsyncLogFile, name: str, readings: int):
    for i in range(readings):
        await log_file.write({"SENSOR": name}, datetime.now(), f"reading={i}")
        await asyncio.sleep(0.01)


async def main():
    config = RotationConfig(pattern="logs/sensors/YYYYMMDD/{SENSOR}.log")

    async with AsyncLogFile(config) as log_file:
        await asyncio.gather(*(sensor(log_file, f"s{n}", 20) for n in range(5)))
        print(log_file.get_stats())


if __name__ == "__main__":
    asyncio.run(main())

#!/usr/bin/env python3
"""
Simple write throughput analysis for datelog
"""

import statistics
import tempfile
import time
from datetime import datetime

from datelog import LogFile, RotationConfig


def time_function(func, iterations=1000):
    """Time a function over multiple iterations"""
    times = []
    for _ in range(5):  # Run 5 times for average
        start = time.perf_counter()
        for _ in range(iterations):
            func()
        end = time.perf_counter()
        times.append((end - start) / iterations * 1000)  # ms per iteration

    return {
        "mean": statistics.mean(times),
        "stdev": statistics.stdev(times) if len(times) > 1 else 0,
        "min": min(times),
        "max": max(times),
    }


def bench(label: str, flush: bool, hosts: int):
    with tempfile.TemporaryDirectory() as tmp:
        config = RotationConfig(
            pattern=f"{tmp}/{{APP}}/YYYYMMDD/{{APP}}_{{IP}}.log", flush=flush
        )
        log_file = LogFile(config)
        log_file.start()
        now = datetime.now()
        counter = {"n": 0}

        def write():
            counter["n"] += 1
            ip = f"10.0.0.{counter['n'] % hosts}"
            log_file.write({"APP": "bench", "IP": ip}, now, "x" * 120)

        stats = time_function(write, 2000)

        close_start = time.perf_counter()
        log_file.close()
        close_ms = (time.perf_counter() - close_start) * 1000

    print(f"\n{label}")
    print(f"   Mean:  {stats['mean']:.4f}ms per write")
    print(f"   Std:   {stats['stdev']:.4f}ms")
    print(f"   Close: {close_ms:.1f}ms")


def main():
    print("datelog write performance")
    print("=" * 50)

    bench("1. One file, fsync per batch", flush=True, hosts=1)
    bench("2. One file, no fsync", flush=False, hosts=1)
    bench("3. Sixteen files, fsync per batch", flush=True, hosts=16)


if __name__ == "__main__":
    main()

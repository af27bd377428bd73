#!/usr/bin/env python3
"""
Example: write lines for two hosts and let the scheduler archive old days
"""

from datetime import datetime, timedelta

from datelog import LogFile, RotationConfig, configure_logging


def main():
    configure_logging()

    config = RotationConfig(
        pattern="logs/{APP}/YYYYMMDD/{APP}_YYYYMMDD_{IP}_{ZONE}.log",
        max_delay_days=1,  # log time may lag the clock by at most one day
        archive_days=7,  # archive logs older than 7 days
        delete_days=90,  # delete logs and archives older than 90 days
        flush=True,  # fsync every drained batch; costs throughput
    )

    with LogFile(config) as log_file:
        now = datetime.now()
        for ip in ("192.168.0.1", "192.168.0.2"):
            properties = {"APP": "ids", "IP": ip, "ZONE": "zone01"}
            log_file.write(properties, now, f"{ip}: a line for today")
            log_file.write(
                properties, now - timedelta(hours=20), f"{ip}: a late line"
            )

        print("written to", log_file.resolve(properties, now))
        print(log_file.get_stats())


if __name__ == "__main__":
    main()

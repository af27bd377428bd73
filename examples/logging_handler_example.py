#!/usr/bin/env python3
"""
Example: route standard logging records into per-tenant daily files
"""

import logging

from datelog import LogFile, RotationConfig, create_file_logger, property_context


def handle_request(logger: logging.Logger, tenant: str, path: str):
    with property_context(TENANT=tenant):
        logger.info(f"GET {path}")
        logger.warning("slow response", extra={"prop_ZONE": "eu-west"})


def main():
    log_file = LogFile(
        RotationConfig(
            pattern="logs/{APP}/YYYY-MM-DD/{TENANT}_{ZONE}.log",
            archive_days=3,
            delete_days=30,
        )
    )
    log_file.start()

    logger = create_file_logger(
        "example.web", log_file, properties={"APP": "web", "ZONE": "default"}
    )

    try:
        handle_request(logger, "acme", "/orders")
        handle_request(logger, "globex", "/invoices")
    finally:
        log_file.close()


if __name__ == "__main__":
    main()

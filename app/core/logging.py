"""
Logging utilities for the FastAPI application and the serverless handler.

Provides a consistent logging format and configuration.
"""

import logging
import sys

# Loggers from the HTTP stack echo full request URLs, which can include codes.
_NOISY_LOGGERS = ("httpx", "httpcore", "botocore", "boto3")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["configure_logging"]

"""Logging setup for the API process."""

import logging

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure the root logger once.

    Args:
        level: Log level name, e.g. "INFO" or "DEBUG".
    """
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level.upper())
        return
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # uvicorn access logs are noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

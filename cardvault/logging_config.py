"""Logging setup for the API process."""

import logging

LOG_FORMAT = "%(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once. Safe to call again (no duplicate handlers)."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("cardvault").setLevel(level.upper())

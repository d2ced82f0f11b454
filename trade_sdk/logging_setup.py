"""Logging configuration for applications embedding the SDK."""

import logging
import sys

from trade_sdk.config import get_settings

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


def setup_logging(level: str | int | None = None) -> None:
    """Install a stdout handler on the root logger.

    The SDK itself only ever calls ``logging.getLogger(__name__)``; this helper
    is for scripts and services that do not configure logging themselves.
    """
    if level is None:
        level = get_settings().log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)

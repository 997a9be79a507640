"""Logging utilities that work both in and out of Prefect context."""
import sys

from prefect import get_run_logger
from prefect.exceptions import MissingContextError
from loguru import logger as loguru_logger


def get_logger():
    """
    Get a logger for pipeline code.

    Returns:
        - Prefect run logger inside a refresh flow or one of its tasks
        - Loguru logger otherwise (Flask handlers, tests, standalone scripts)
    """
    try:
        return get_run_logger()
    except MissingContextError:
        return loguru_logger


def configure_logging(level: str = 'INFO') -> None:
    """Send loguru output to stdout at the given level. Called once by entry points."""
    loguru_logger.remove()
    loguru_logger.add(sys.stdout, level=level.upper())

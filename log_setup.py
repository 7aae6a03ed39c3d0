"""Logging configuration for the server entry point."""

import logging
import os
import sys

LOG_LEVEL_ENV = "EIGHTBALL_LOG_LEVEL"
DEFAULT_LEVEL = "INFO"

# Frame-rate chatter from the HTTP layer stays at WARNING unless DEBUG is asked for
_NOISY_LOGGERS = ("uvicorn.access",)


def resolve_level(level=None) -> str:
    """Level name from the argument, else ``EIGHTBALL_LOG_LEVEL``, else INFO.

    Unknown names fall back to INFO.
    """
    name = str(level or os.environ.get(LOG_LEVEL_ENV) or DEFAULT_LEVEL).upper()
    if not isinstance(logging.getLevelName(name), int):
        return DEFAULT_LEVEL
    return name


def setup_logging(level=None) -> str:
    """Send every module logger to stdout; returns the level name applied."""
    name = resolve_level(level)
    logging.basicConfig(
        level=name,
        format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.DEBUG if name == "DEBUG" else logging.WARNING)
    return name

"""Singleton logging configuration.

setup_logging() configures the root logger once per process. Log
records go to stderr so stdout carries only the rendered report.
Idempotent (guarded by a module-level flag).
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# Loggers kept at WARNING even when the tool runs with --debug
_SUPPRESSED_LOGGERS = ("asyncio",)

_setup_done = False


def setup_logging(level: str = "WARNING") -> None:
    """Configure the root logger and pin noisy loggers to WARNING.

    Idempotent — second call only adjusts the root level.
    """
    global _setup_done  # noqa: PLW0603
    root_level = getattr(logging, level.upper())
    if _setup_done:
        logging.getLogger().setLevel(root_level)
        return
    _setup_done = True

    logging.basicConfig(
        level=root_level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stderr,
    )

    for name in _SUPPRESSED_LOGGERS:
        lg = logging.getLogger(name)
        lg.setLevel(logging.WARNING)

"""
Log setup for processes that host the engine.

The engine modules only create module loggers; handlers are the host's job.
"""
import logging
import sys
from typing import Optional


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    if level is None:
        from winprob.config import get_settings

        level = get_settings().LOG_LEVEL

    fmt = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.addHandler(ch)

    return root

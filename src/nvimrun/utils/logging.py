"""Logging setup utilities for nvimrun."""

from __future__ import annotations

import logging
import sys

from nvimrun.config import LoggingConfig


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Configure the ``nvimrun`` logger.

    Sets the level and format from ``config`` and attaches a stderr handler,
    plus a file handler when ``config.file`` is set. Calling it again replaces
    the handlers installed by a previous call instead of stacking them.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output).
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger("nvimrun")
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in list(root_logger.handlers):
        if getattr(handler, "_nvimrun_handler", False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(config.format)

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler._nvimrun_handler = True  # type: ignore[attr-defined]
    root_logger.addHandler(console_handler)

    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(formatter)
        file_handler._nvimrun_handler = True  # type: ignore[attr-defined]
        root_logger.addHandler(file_handler)

    root_logger.debug("Logging initialized at %s level", config.level)
    return root_logger

"""Logging setup for mediaprint.

Library modules log through ``logging.getLogger(__name__)`` and never configure
handlers. Entry points (the CLI, the HTTP server) call setup_logger() once to
attach a console handler to the ``mediaprint`` logger. Debug output is enabled
by the MEDIAPRINT_DEBUG environment variable or the --verbose flag.
"""

import logging
import os
from typing import Optional

LOGGER_NAME = "mediaprint"
LOG_FORMAT = "[%(levelname)s] %(asctime)s %(name)s: %(message)s"

_logger: Optional[logging.Logger] = None


def debug_enabled() -> bool:
    """Whether MEDIAPRINT_DEBUG requests debug logging."""
    return os.getenv("MEDIAPRINT_DEBUG", "0") == "1"


def setup_logger(verbose: bool = False) -> logging.Logger:
    """Attach a stream handler to the package logger (idempotent).

    Args:
        verbose: Force DEBUG level even when MEDIAPRINT_DEBUG is unset.
    """
    global _logger
    logger = _logger or logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose or debug_enabled() else logging.INFO)
    _logger = logger
    return logger

"""
Shared application logger.
"""

import logging
import sys

from hybrid_memory.core.config import get_settings

LOGGER_NAME = "hybrid_memory"


def setup_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Create the application logger with a single stream handler."""
    settings = get_settings()
    log = logging.getLogger(name)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log.addHandler(handler)
    log.setLevel(settings.LOG_LEVEL.upper())
    return log


logger = setup_logger()

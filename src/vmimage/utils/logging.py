"""Logging setup shared by build-image and the supervisor."""

import logging
import sys
from typing import Optional, TextIO

from vmimage.errors import ConfigurationError


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", stream: Optional[TextIO] = None):
    """Send log records to ``stream``, stderr by default.

    stdout is left to the build summary and, under the supervisor, to the
    supervised processes themselves.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ConfigurationError(f"Unknown log level: {level}", field="log_level")

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logging.basicConfig(level=log_level, handlers=[handler], force=True)

    # Subprocess transport debug output
    logging.getLogger("asyncio").setLevel(logging.WARNING)

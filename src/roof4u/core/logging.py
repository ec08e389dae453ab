"""
Logging setup for roof4u entry points.

Library modules only create `logging.getLogger(__name__)`; the CLI calls
setup_logging() once to attach a handler to the root logger.
"""

import logging
import sys

from roof4u.core.config import get_log_level

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger to write to stderr."""
    logging.basicConfig(
        level=level or get_log_level(),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

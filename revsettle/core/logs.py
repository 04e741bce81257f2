"""
Logging setup for applications embedding revsettle.

Library modules only call logging.getLogger(__name__); nothing is
emitted until an application calls configure_logging().
"""

import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: Union[int, str] = logging.WARNING) -> logging.Logger:
    """Attach one stream handler to the 'revsettle' logger (idempotent)."""
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logger = logging.getLogger("revsettle")
    logger.setLevel(level)
    # one handler, always bound to the current sys.stderr
    for handler in [h for h in logger.handlers if getattr(h, "_revsettle", False)]:
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._revsettle = True
    logger.addHandler(handler)
    return logger

from __future__ import annotations

import logging
import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_configured = False


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the ``supplyhub`` logger tree.

    Safe to call more than once; later calls only adjust the level.
    """
    global _configured
    logger = logging.getLogger("supplyhub")
    logger.setLevel((level or LOG_LEVEL).upper())
    if _configured:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    _configured = True

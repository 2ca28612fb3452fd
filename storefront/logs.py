from __future__ import annotations
import logging
import sys

FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stdout handler to the ``storefront`` logger tree."""
    logger = logging.getLogger("storefront")
    logger.setLevel(level.upper())
    if logger.handlers:
        return logger  # avoid double handlers on reload / in tests

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger

"""
Logging setup.

Every module logs through ``logging.getLogger(__name__)`` so records land under
the ``tripsplit`` namespace. Structured context goes in ``extra=``.
"""

import logging

from tripsplit.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure the ``tripsplit`` logger once, at application startup."""
    logger = logging.getLogger("tripsplit")
    logger.setLevel((level or settings.LOG_LEVEL).upper())

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

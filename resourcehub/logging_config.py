import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
HANDLER_NAME = "resourcehub"

logger = logging.getLogger("resourcehub")


def setup_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the package logger (idempotent)."""
    logger.setLevel(level.upper())
    if not any(h.get_name() == HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.propagate = False

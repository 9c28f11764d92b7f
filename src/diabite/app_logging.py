"""Logging configuration helpers."""

import logging

# HTTP client libraries log every request at INFO; tier outcomes are logged
# by the resolver instead.
_QUIET_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(debug: bool = False) -> None:
    """Attach one stream handler to the ``diabite`` logger tree."""
    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger("diabite")
    logger.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s: %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False

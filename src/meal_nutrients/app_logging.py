"""Logging configuration helpers."""

import logging

# Request lines logged by these at INFO carry API keys in query strings.
_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(debug: bool = False) -> None:
    """Configure application logging with a single stream handler."""
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger("meal_nutrients")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s: %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False

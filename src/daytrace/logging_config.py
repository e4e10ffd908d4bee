"""Shared logging configuration for daytrace."""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"

# Third-party loggers that are noisy even at INFO.
_NOISY_LOGGERS = (
    "PIL",
    "httpx",
    "httpcore",
    "urllib3",
    "LiteLLM",
    "doctr",
)


def configure_logging(debug: bool = False, component: str = "daytrace") -> logging.Logger:
    """Configure root logging for the CLI and capture daemon.

    Args:
        debug: Log at DEBUG instead of INFO.
        component: Name of the logger returned to the caller.

    Returns:
        The component logger.
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=_FORMAT,
        datefmt="%H:%M:%S",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logging.getLogger(component)

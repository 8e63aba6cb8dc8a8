from __future__ import annotations

import logging
from logging.config import dictConfig

_configured = False


def configure_logging(verbose: bool = False) -> None:
    """Send pmtrack log lines to stderr; verbose also shows packet hex dumps."""
    global _configured
    level = logging.DEBUG if verbose else logging.INFO
    if _configured:
        logging.getLogger().setLevel(level)
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "level": "DEBUG",
                    "formatter": "console",
                }
            },
            "root": {"handlers": ["default"], "level": level},
            "loggers": {"urllib3": {"level": "WARNING"}},
        }
    )

    _configured = True

import logging
import logging.config
import sys


def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the whole application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "fabot": {"level": level, "handlers": ["console"], "propagate": False},
            # The SDKs are chatty at DEBUG
            "httpx": {"level": "WARNING"},
            "openai": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)
    logging.getLogger("fabot").debug("Logging configured at %s", level)

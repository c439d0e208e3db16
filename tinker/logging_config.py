"""
Custom logging configuration to suppress urllib3 retry noise
"""

import logging
import logging.config
from typing import Dict, Any


class ConnectionRetryFilter(logging.Filter):
    """Filter to suppress urllib3 connection retry warnings."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter out urllib3 retry warnings; the exec gateway logs its own retries."""
        if record.name.startswith("urllib3"):
            message = record.getMessage()
            if "Retrying" in message and record.levelno <= logging.WARNING:
                return False
        return True


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration with retry noise suppression."""
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "connection_retry_filter": {
                "()": ConnectionRetryFilter
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
                "filters": ["connection_retry_filter"]
            }
        },
        "loggers": {
            "tinker": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            },
            "kubernetes": {
                "handlers": ["default"],
                "level": "WARNING",
                "propagate": False
            },
            "urllib3": {
                "handlers": ["default"],
                "level": "WARNING",
                "propagate": False
            }
        },
        "root": {
            "level": level,
            "handlers": ["default"]
        }
    }


def configure_logging(level: str = "INFO") -> None:
    """Apply the logging configuration."""
    logging.config.dictConfig(get_logging_config(level))

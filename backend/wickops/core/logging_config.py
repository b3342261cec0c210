"""
Logging configuration.

WHY: Modules log through ``logging.getLogger(__name__)``; this wires the
root handler once with the request id of the current invocation so that
replayed triggers and racing status checks can be told apart.
"""

import logging.config

from wickops.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


def configure_logging() -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "request_id": {"()": "wickops.middleware.request_context.RequestIdLogFilter"},
            },
            "formatters": {
                "default": {"format": LOG_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["request_id"],
                },
            },
            "root": {
                "level": "DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
                "handlers": ["console"],
            },
            "loggers": {
                # botocore is chatty at DEBUG
                "botocore": {"level": "WARNING"},
            },
        }
    )

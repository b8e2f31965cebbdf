"""Custom filters for uvicorn access logging."""

import logging

from chatcast.settings import app_settings


class ExcludeMetricsFilter(logging.Filter):
    """
    Logging filter to exclude monitoring endpoint requests from access logs.

    Requests to ``LOG_EXCLUDED_PATHS`` (``/metrics`` and ``/health`` by
    default) are dropped from uvicorn's access log.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        return not any(
            path in message for path in app_settings.LOG_EXCLUDED_PATHS
        )

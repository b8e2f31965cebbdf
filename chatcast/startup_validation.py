"""
Startup validation for configuration the service cannot run without.

Validation runs during application startup, before accepting any
connection, so misconfiguration surfaces to the operator immediately.
"""

import os

from chatcast.exceptions import StartupValidationError
from chatcast.logging import logger
from chatcast.settings import Settings, app_settings


def validate_settings(settings: Settings = app_settings) -> None:
    """
    Validate configuration values.

    Raises:
        StartupValidationError: If a configured static asset directory is
            missing or the outbound buffer size is not positive.
    """
    logger.info("Validating application settings...")

    if settings.STATIC_DIR is not None and not os.path.isdir(
        settings.STATIC_DIR
    ):
        raise StartupValidationError(
            f"STATIC_DIR '{settings.STATIC_DIR}' does not exist"
        )

    if settings.WS_SEND_QUEUE_SIZE < 1:
        raise StartupValidationError("WS_SEND_QUEUE_SIZE must be at least 1")

    if settings.WS_CLOSE_TIMEOUT_SECONDS <= 0:
        raise StartupValidationError(
            "WS_CLOSE_TIMEOUT_SECONDS must be greater than 0"
        )

    logger.info("Application settings validated")

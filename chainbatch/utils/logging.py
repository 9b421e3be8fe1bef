"""
Logging setup.

Configures loguru logger sinks from application settings.
"""

import sys

from loguru import logger

from chainbatch.config.settings import Settings


def setup_logging(settings: Settings) -> None:
    """Configure logger with stderr sink and optional file rotation."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="1 day",
            retention="7 days",
            level=settings.log_level,
            encoding="utf-8",
        )

    logger.info(f"Logging configured (level={settings.log_level})")

"""Loguru sink configuration."""

from __future__ import annotations

import sys

from loguru import logger

from signaldesk.config import Settings

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | {message}"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}"


def configure_logging(settings: Settings) -> None:
    """Replace loguru's default handler with the configured sinks."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper(), format=_CONSOLE_FORMAT)
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.log_file,
            level=settings.log_level.upper(),
            rotation="10 MB",
            retention="30 days",
            format=_FILE_FORMAT,
        )

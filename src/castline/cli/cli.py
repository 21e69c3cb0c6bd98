"""Command-line entry point for castline."""

import logging

from ..config import AppSettings
from ..logging_config import setup_logging
from .default import default


async def main_cli():
    """Load settings, configure logging and run the service."""
    settings = AppSettings()  # type: ignore

    log_config = setup_logging(
        log_format_type=settings.log_format,
        app_log_level_name=settings.log_level,
        include_stacktrace=settings.log_include_stacktrace,
    )

    logger = logging.getLogger(__name__)
    logger.debug(
        "Application logging configured.",
        extra={
            "log_format": settings.log_format,
            "log_level": settings.log_level,
            "include_stacktrace": settings.log_include_stacktrace,
        },
    )
    logger.debug(
        "Application settings loaded.",
        extra={
            "config_file": str(settings.config_file),
            "configured_feeds": len(settings.feeds),
            "dispatch_mode": settings.dispatch_mode,
        },
    )

    await default(settings, log_config)
    logger.debug("main_cli execution finished.")

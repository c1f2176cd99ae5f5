"""Logging configuration."""

import logging

from desco_report.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the process."""
    level_name = level or settings.LOG_LEVEL or ("DEBUG" if settings.DEBUG else "INFO")
    logging.basicConfig(level=level_name.upper(), format=LOG_FORMAT)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

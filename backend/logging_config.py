"""Centralized logging configuration."""

import logging

from config import settings

# Third-party loggers that drown out sync progress at INFO
QUIET_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
    "urllib3",
    "plaid",
)


def setup_logging(level: str | None = None) -> None:
    """Configure logging for the service and the CLI scripts.

    Args:
        level: Overrides ``settings.LOG_LEVEL`` (e.g. ``"DEBUG"`` for a
            verbose CLI run).
    """
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
        datefmt="%H:%M:%S",
        level=getattr(logging, (level or settings.LOG_LEVEL).upper()),
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

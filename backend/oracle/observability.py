"""Logfire cloud observability initialization."""

import logging

import logfire

from oracle import __version__
from oracle.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings, environment: str = "production") -> bool:
    """
    Initialize Logfire and bridge Python logging to it.

    Must be called ONCE at application startup, before any settlement runs.

    Args:
        settings: Application settings containing Logfire token
        environment: Environment label attached to every span

    Returns:
        True if Logfire was configured, False if disabled or it failed.
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return False

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="oracle",
            service_version=__version__,
            environment=environment,
        )

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("✓ Logfire cloud tracking initialized")
        return True

    except Exception as e:
        # Observability is optional; commands keep running without it
        logger.warning(f"Failed to initialize Logfire: {e}")
        return False

"""Logging and Logfire tracing setup for the library database."""

import logging
import sys

import logfire

from .config import LibraryConfig, get_config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(config: LibraryConfig | None = None) -> None:
    """Send log records to stderr at the configured level."""
    config = config or get_config()
    level = logging.DEBUG if config.debug else getattr(logging, config.log_level)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )

    if not config.echo_sql:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def initialize_observability(config: LibraryConfig | None = None) -> bool:
    """
    Configure Logfire for the circulation spans.

    Nothing leaves the machine unless ``send_to_logfire`` is set, in which
    case Logfire reads its token from ``LOGFIRE_TOKEN``.

    Returns:
        True if Logfire was configured, False if disabled by configuration
    """
    config = config or get_config()

    if not config.observability_enabled:
        logger.debug("Observability disabled via configuration")
        return False

    logfire.configure(
        service_name="library-db",
        send_to_logfire=config.send_to_logfire,
        console=None if config.observability_console else False,
    )
    logger.debug("Logfire configured (send_to_logfire=%s)", config.send_to_logfire)
    return True

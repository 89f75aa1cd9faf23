"""Process-wide logging setup.

Domain modules log through the standard library (``logging.getLogger``);
infrastructure adapters use ``structlog``. Both end up on the same handlers.
"""

import logging
import sys

import structlog

from condoledger.core.config import Settings, get_settings

_configured = False


def configure_logging(settings: Settings | None = None) -> None:
    """Configure stdlib logging and structlog once per process."""
    global _configured
    if _configured:
        return

    settings = settings or get_settings()
    level = getattr(logging, settings.log_level)

    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s %(message)s",
        stream=sys.stdout,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True
    logging.getLogger(__name__).info(f"Logging configured for {settings.project_name}")

import logging
import sys

import structlog


_configured = False


def configure_logging(level: str = "INFO", json: bool = True) -> None:
    """Set up structlog once per process.

    Later calls are ignored so that the sync CLI and the app factory can
    both call this without stacking configuration.
    """
    global _configured
    if _configured:
        return

    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=lvl, format="%(message)s", stream=sys.stdout)

    renderer = (
        structlog.processors.JSONRenderer() if json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(lvl),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True

"""
structlog configuration for the API process.
"""

import logging
import sys

import structlog


def setup_logging(log_level: str = "INFO", log_format: str = "json", environment: str = "development") -> None:
    """
    Route structlog through stdlib logging on stdout.

    Every event carries the deployment ``environment`` so logs from several
    instances can share one sink.

    Args:
        log_level: Minimum level to emit (DEBUG, INFO, WARNING, ERROR)
        log_format: "json" for machine-readable lines, anything else for the dev console
        environment: Deployment name bound to every event
    """
    level = getattr(logging, log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(environment=environment)

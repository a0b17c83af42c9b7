"""
Logging — structlog setup.

Modules log through `structlog.get_logger(__name__)`; call
configure_logging() once at startup to pick renderer and level.
"""

from __future__ import annotations

import logging

import structlog

from marketplace._settings import MarketplaceSettings


def configure_logging(settings: MarketplaceSettings) -> None:
    """JSON lines in production, console renderer everywhere else."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.is_production:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    # Engine echo goes through stdlib logging.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


__all__ = ("configure_logging",)

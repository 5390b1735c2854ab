"""
structlog configuration.

Call *configure_logging* once at startup (app/main.py does this). Modules
then log with:

    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("night_spin_started", night_id=str(night.id))

Production renders one JSON object per line; development renders
colored console output.
"""
import logging

import structlog
from structlog.typing import Processor

from app.core.config import settings


def _resolve_level(level_name: str) -> int:
    """Map a level name like 'debug' to its logging constant (INFO on junk)."""
    return getattr(logging, level_name.upper(), logging.INFO)


def configure_logging(environment: str | None = None, level: str | None = None) -> None:
    environment = environment or settings.APP_ENV
    level_no = _resolve_level(level or settings.LOG_LEVEL)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if environment == "production":
        final_processor: Processor = structlog.processors.JSONRenderer()
    else:
        final_processor = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [final_processor],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

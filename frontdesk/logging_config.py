import logging
import sys

import structlog

from .config import settings

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "apscheduler", "passlib")

_configured = False


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(force: bool = False):
    """Route structlog through stdlib logging at ``LOG_LEVEL``.

    Runs once per process; ``force`` re-reads settings. ``LOG_JSON=0`` swaps
    the JSON renderer for plain console lines.
    """
    global _configured
    if _configured and not force:
        return

    level = _resolve_level(settings.LOG_LEVEL)
    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.LOG_JSON:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    _configured = True

    structlog.get_logger("frontdesk").info(
        "logging_initialized",
        root_level=logging.getLevelName(level),
        json=settings.LOG_JSON,
    )

"""Structured logging configuration with structlog."""

import logging

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from checklist.config import Settings

# Loggers that would otherwise drown the request log at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "httpx", "uvicorn.access")


def _service_context(environment: str, version: str) -> Processor:
    def add_service(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", "checklist-api")
        event_dict.setdefault("environment", environment)
        event_dict.setdefault("version", version)
        return event_dict

    return add_service


def setup_logging(settings: Settings) -> None:
    """Configure structlog: JSON lines in production, coloured console output otherwise."""
    json_output = settings.log_format == "json"
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            _service_context(settings.environment, settings.app_version),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors += [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

"""Structured logging for the StudyBet backend.

structlog renders every record (ours and stdlib ones from uvicorn, SQLAlchemy,
asyncpg, anthropic) through one ProcessorFormatter, so production output is a
single JSON stream. Each entry carries:
- ``service`` so several deployments can share a log sink
- ``correlation_id`` from asgi-correlation-id while a request is in flight
- ``user_id`` once the request's identity is resolved (see ``bind_user``)
- a rendered ``exception`` field for ``logger.exception`` calls
"""

import logging
import logging.config
import uuid

import structlog
from asgi_correlation_id.context import correlation_id

SERVICE_NAME = "studybet-backend"

# Chatty libraries kept at WARNING regardless of the root level
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "anthropic", "asyncpg", "sqlalchemy.engine")


def add_correlation_id(logger, method, event_dict):
    """Attach the current request's correlation id, when there is one."""
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def _add_service(service_name: str):
    def processor(logger, method, event_dict):
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def bind_user(user_id: uuid.UUID) -> None:
    """Tag every later log line of the current request/task with ``user_id``."""
    structlog.contextvars.bind_contextvars(user_id=str(user_id))


def configure_structlog(log_level: str = "INFO", json_logs: bool = True, service_name: str = SERVICE_NAME) -> None:
    """Configure structlog and route stdlib logging through it.

    Must run before anything calls ``structlog.get_logger`` and logs, because
    loggers cache their processor chain on first use.

    Args:
        log_level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
        json_logs: JSON lines when True, colored console output otherwise
        service_name: Value of the ``service`` field on every entry
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        _add_service(service_name),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        renderer = structlog.processors.JSONRenderer()
        # Tracebacks become a string field instead of a multi-line dump
        final_processors = [structlog.processors.format_exc_info, renderer]
    else:
        renderer = structlog.dev.ConsoleRenderer()
        final_processors = [renderer]

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    *final_processors,
                ],
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["default"], "level": log_level},
        "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
    })

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

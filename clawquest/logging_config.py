"""Structured logging configuration using structlog."""

import logging
import sys
from typing import Any
from uuid import UUID

import structlog

# Keys whose values must never reach a log sink.
REDACTED_KEYS = frozenset({"answer", "secret_answer", "correct_answer", "oracle_api_key", "token"})


def redact_secrets(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Mask defense answers and credentials before rendering."""
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "clawquest",
) -> None:
    """
    Configure structured logging for the game service.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON lines when True, colored console output otherwise
        service_name: Bound to every entry as ``service``
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
    ]

    if json_format:
        renderer: list[structlog.types.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=[*shared_processors, *renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def bind_request_context(request_id: str, agent_id: UUID | str | None = None, **kwargs: Any) -> None:
    """Bind request-scoped fields (request id, acting agent) to subsequent entries."""
    context: dict[str, Any] = {"request_id": request_id}
    if agent_id:
        context["agent_id"] = str(agent_id)
    context.update(kwargs)
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    """Drop request-scoped fields, keeping the bound service name."""
    structlog.contextvars.unbind_contextvars("request_id", "agent_id", "path")

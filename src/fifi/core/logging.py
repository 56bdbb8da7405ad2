"""
Structured logging for fifi.

Every module logs through structlog with a dotted event name and keyword
fields::

    logger = get_logger(__name__)
    logger.warning("connectivity.probe_failed", executor="sat-1", error="timeout")

The run being dispatched or cancelled is bound once with :class:`LogContext`
and merged into every event emitted underneath it.

Processor chain built by :func:`configure_logging`::

    merge_contextvars        playbook_run_id, remediation_id, ...
    add_log_level
    TimeStamper(iso)
    _expand_fifi_errors      error=<FifiError>  ->  error={code, category, ...}
    _stamp_service
    _ecs_field_names         JSON only: level -> log.level, timestamp -> @timestamp
    JSONRenderer | ConsoleRenderer
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from fifi.core.errors import FifiError

_service = "fifi"

_ECS_RENAMES = {"level": "log.level", "timestamp": "@timestamp"}


def _stamp_service(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _service)
    return event_dict


def _expand_fifi_errors(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Replace FifiError values with their structured ``to_dict()`` form."""
    for key, value in event_dict.items():
        if isinstance(value, FifiError):
            event_dict[key] = value.to_dict()
    return event_dict


def _ecs_field_names(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    for old, new in _ECS_RENAMES.items():
        if old in event_dict:
            event_dict[new] = event_dict.pop(old)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "fifi",
) -> None:
    """Configure structlog (and the stdlib root logger) once at startup.

    ``json_format=None`` picks JSON when stdout is not a terminal.
    """
    global _service
    _service = service

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _expand_fifi_errors,
        _stamp_service,
    ]
    if json_format:
        processors += [_ecs_field_names, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=numeric_level, stream=sys.stdout, format="%(message)s")


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind keys for the duration of a ``with`` / ``async with`` block.

    Example:
        async with LogContext(playbook_run_id=run_id):
            await dispatcher.dispatch(...)
    """

    def __init__(self, **kwargs: Any):
        self.keys = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self.keys)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        unbind_context(*self.keys)

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]

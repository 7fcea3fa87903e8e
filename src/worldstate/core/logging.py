"""
structlog setup shared by the pipeline and the CLI.

Events are dot-namespaced (``generation.skip``, ``storage.rollback.error``)
with key/value fields. ``minute_bucket`` and ``hash`` are bound once per
tick through contextvars, so every event of that tick carries them.

Rendering is JSON when the target stream is not a terminal (cron,
containers) and colored console output otherwise. JSON records use ECS
names for the timestamp and level (``@timestamp``, ``log.level``).

    >>> configure_logging(level="DEBUG", json_format=True)
    >>> get_logger(__name__).info("generation.trigger", hash="a1b2c3d4e5f6a7b8")
"""

from __future__ import annotations

import logging
import sys
from functools import partial
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_ECS_RENAMES = {"timestamp": "@timestamp", "level": "log.level"}


def _stamp_service(service: str, _logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", service)
    return event_dict


def _ecs_field_names(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    for old, new in _ECS_RENAMES.items():
        if old in event_dict:
            event_dict[new] = event_dict.pop(old)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "worldstate",
    stream: TextIO | None = None,
) -> None:
    """
    Install the processor chain and route stdlib logging to ``stream``.

    ``json_format=None`` picks JSON unless ``stream`` is a tty. The CLI
    passes ``sys.stderr`` so command output on stdout stays parseable.
    """
    stream = stream or sys.stdout
    numeric_level = logging.getLevelName(level.upper())
    if json_format is None:
        json_format = not stream.isatty()

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        partial(_stamp_service, service),
    ]
    if json_format:
        processors += [_ecs_field_names, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=stream, level=numeric_level, force=True)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


bind_context = structlog.contextvars.bind_contextvars
unbind_context = structlog.contextvars.unbind_contextvars
clear_context = structlog.contextvars.clear_contextvars


class LogContext:
    """
    Bind fields for the duration of a ``with`` or ``async with`` block.

        async with LogContext(minute_bucket=bucket, hash=digest):
            ...
    """

    def __init__(self, **fields: Any):
        self._fields = fields

    def __enter__(self) -> LogContext:
        bind_context(**self._fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        unbind_context(*self._fields)

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

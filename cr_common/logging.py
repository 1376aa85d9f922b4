"""Logging setup shared by the generator, the drivers and ``cr-tpcc``.

Modules log through ``logging.getLogger(__name__)``; records are rendered by
structlog so that values bound with :func:`bind_log_context` (cluster, phase,
level) appear on every line written while they are bound.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Iterable

import structlog

from cr_common.config.env import parse_bool_env

LEVEL_ENV = "CR_LOG_LEVEL"
JSON_ENV = "CR_LOG_JSON"
FILE_ENV = "CR_LOG_FILE"


def _level_from(value: str | int | None, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if isinstance(value, int):
        return value
    if not value:
        return logging.INFO
    if value.strip().isdigit():
        return int(value)
    return logging._nameToLevel.get(value.strip().upper(), logging.INFO)


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def build_formatter(as_json: bool = False) -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering stdlib records (and bound context) via structlog."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if as_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer, foreign_pre_chain=_pre_chain()
    )


def _install_structlog() -> None:
    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _replace_handlers(root: logging.Logger, handlers: Iterable[logging.Handler]) -> None:
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)


def configure_logging(
    *,
    level: str | int | None = None,
    debug: bool = False,
    log_file: str | Path | None = None,
    json: bool | None = None,
    force: bool = False,
) -> None:
    """Route root logging to stderr (and ``log_file``) through structlog.

    Explicit arguments win over ``CR_LOG_LEVEL``, ``CR_LOG_JSON`` and
    ``CR_LOG_FILE``. When the root logger already has handlers they are kept
    unless ``force`` is set; driver scripts force so each run gets its own
    log file.
    """
    as_json = json if json is not None else bool(parse_bool_env(os.environ.get(JSON_ENV)))
    target = log_file if log_file is not None else os.environ.get(FILE_ENV)
    root = logging.getLogger()

    if root.handlers and not force:
        _install_structlog()
        return

    formatter = build_formatter(as_json)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if target:
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)

    if force:
        _replace_handlers(root, handlers)
    else:
        for handler in handlers:
            root.addHandler(handler)
    root.setLevel(_level_from(level or os.environ.get(LEVEL_ENV), debug))
    _install_structlog()


def bind_log_context(**values: Any) -> None:
    """Attach ``values`` to every record logged from this context."""
    structlog.contextvars.bind_contextvars(**values)


def unbind_log_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)

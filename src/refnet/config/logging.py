"""Logging setup: structlog over stdlib, one stderr handler.

Network events carry raw float coordinates and energies; they are
rounded before rendering so console and JSON lines stay readable.
``--log-json`` switches the renderer to one JSON object per line.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

# Chatty dependencies kept at WARNING even under --verbose.
_QUIET_LOGGERS = ("sqlalchemy", "asyncio")

_FLOAT_DIGITS = 3


def _round_value(value: Any) -> Any:
    if isinstance(value, float):
        return round(value, _FLOAT_DIGITS)
    if isinstance(value, tuple):
        return tuple(_round_value(v) for v in value)
    if isinstance(value, list):
        return [_round_value(v) for v in value]
    return value


def round_floats(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Round float fields (and floats inside position tuples)."""
    for key, value in event_dict.items():
        event_dict[key] = _round_value(value)
    return event_dict


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route ``refnet.*`` structlog events and stdlib records to stderr.

    ``refnet.*`` logs at DEBUG with *verbose*, WARNING otherwise. Safe to
    call more than once; the previous handler is replaced.
    """
    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        round_floats,
    ]
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.WARNING)

    logging.getLogger("refnet").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

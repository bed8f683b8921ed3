"""structlog configuration for strata-mcp.

stdout carries the JSON-RPC stream, so log output is only ever written to
stderr unless a stream is passed explicitly.

Two renderers:
- console (default): key=value lines, colored when the stream is a terminal
- JSON (--log-json): one JSON object per line
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

PACKAGE_LOGGER = "strata_mcp"


def _shared_processors() -> list[structlog.types.Processor]:
    """Processors applied to structlog and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _formatter(
    shared: list[structlog.types.Processor], *, log_json: bool, colors: bool
) -> structlog.stdlib.ProcessorFormatter:
    processors: list[structlog.types.Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
    ]
    if log_json:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=colors))
    return structlog.stdlib.ProcessorFormatter(foreign_pre_chain=shared, processors=processors)


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib logging to a single handler.

    Repeated calls replace the handler instead of adding another one.

    Args:
        verbose: DEBUG for the ``strata_mcp`` loggers; WARNING otherwise.
        log_json: Render JSON lines instead of console output.
        stream: Destination, ``sys.stderr`` when omitted.
    """
    stream = stream if stream is not None else sys.stderr

    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(_formatter(shared, log_json=log_json, colors=stream.isatty()))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    # Third-party libraries stay at WARNING even in verbose mode.
    root.setLevel(logging.WARNING)
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)

"""structlog configuration for linkctl.

Every log line goes to stderr so piped command output stays clean. Lines
are colored console text by default, or JSON objects with ``--log-json``.

Stdlib loggers (``logging.getLogger(__name__)`` in services and the store)
and structlog loggers (audit, telemetry) share one processor chain, so both
carry the owner and entity bound by the CLI for the current command.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Libraries that are chatty at DEBUG and never useful to a linkctl user.
QUIET_LOGGERS = ("sqlalchemy", "pluggy")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> list[structlog.types.Processor]:
    if log_json:
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
) -> None:
    """Route stdlib and structlog records through one stderr handler.

    Args:
        verbose: ``linkctl.*`` loggers emit DEBUG. Otherwise WARNING and up.
        log_json: Render JSON lines instead of console text.
    """
    shared = _shared_processors()

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
                *_renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("linkctl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_command_context(**values: object) -> None:
    """Attach *values* (e.g. ``owner``, ``entity``) to every later log line.

    ``None`` values are skipped. Call :func:`clear_command_context` when the
    command finishes.
    """
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in values.items() if value is not None}
    )


def clear_command_context() -> None:
    structlog.contextvars.clear_contextvars()

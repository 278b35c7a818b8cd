"""structlog setup for tdingest.

Everything logs to stderr; stdout belongs to query output. Library classes
never configure logging. Each takes an optional injected logger with the
structlog BoundLogger interface (``debug/info/warning/error(event, **kw)``)
and falls back to get_logger().
"""

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL_ENV = "TDINGEST_LOG_LEVEL"

_LEVELS: dict[str, int] = {
    name: getattr(logging, name.upper())
    for name in ("debug", "info", "warning", "error", "critical")
}


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # Looked up per logger: CliRunner swaps sys.stderr between invocations.
    return structlog.PrintLogger(file=sys.stderr)


def _resolve_level(verbose: bool, level: str | None) -> int:
    name = level or os.environ.get(LOG_LEVEL_ENV) or ("debug" if verbose else "info")
    try:
        return _LEVELS[name.strip().lower()]
    except KeyError:
        available = ", ".join(_LEVELS)
        raise ValueError(f"Unknown log level '{name}'. Expected one of: {available}") from None


def setup_logging(verbose: bool = False, level: str | None = None) -> None:
    """Configure structlog.

    Args:
        verbose: Log at DEBUG instead of INFO.
        level: Explicit level name. Wins over TDINGEST_LOG_LEVEL, which
            wins over ``verbose``.
    """
    renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(verbose, level)),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger bound with ``logger=<name>`` when given.

    Call from functions or __init__, never at import time, so that
    setup_logging() has already run.
    """
    log = structlog.get_logger()
    return log.bind(logger=name) if name else log

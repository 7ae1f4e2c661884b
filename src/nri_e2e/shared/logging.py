"""Structured logging for nri-e2e.

Every record goes to stderr so that stdout stays free for command output.
Records render as JSON lines when a CI log collector reads them, or as
console lines otherwise.
"""

import logging
import sys

import structlog

# Libraries that log every HTTP request at info level
NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str = "info", json_output: bool = False) -> None:
    """Configure standard logging and structlog once, on startup.

    Args:
        level: Log level name; unknown names fall back to info
        json_output: Render JSON lines instead of console lines

    Console lines are colored only when stderr is a terminal.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    logging.basicConfig(level=log_level, handlers=[handler], format="%(message)s", force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def is_debug_enabled() -> bool:
    """Return True when the root logger emits debug records."""
    return logging.getLogger().isEnabledFor(logging.DEBUG)

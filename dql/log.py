"""
Structured logging for the linter, via structlog on top of stdlib logging.

Formats:
- console: coloured key=value lines (default, for humans and CI logs)
- json: one JSON object per line
"""
import logging
import sys

import structlog

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def parse_level(name: str | None) -> int:
    """Unknown or empty level names fall back to INFO."""
    return _LEVELS.get((name or "").strip().upper(), logging.INFO)


def configure_logging(level: str = "INFO", fmt: str = "console", stream=None) -> None:
    numeric_level = parse_level(level)
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream is None and sys.stdout.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(numeric_level)
    # urllib3/http.client noise is never useful in lint output
    logging.getLogger("urllib3").setLevel(max(logging.WARNING, numeric_level))


def get_logger(name: str = "dql"):
    return structlog.get_logger(name)

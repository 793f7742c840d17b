"""Structlog configuration for account-resources.

Configures structlog with colored console output for interactive use
and JSON output for pipelines.
"""

import logging
import os
import sys

import structlog


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog with appropriate processors.

    Uses colored console output when FORCE_COLOR is set or stderr is a TTY,
    otherwise JSON output. Events below ``level`` are dropped.
    """
    # FORCE_COLOR=1 enables colors even in non-TTY environments (like CI logs)
    force_color = os.environ.get("FORCE_COLOR", "").lower() in ("1", "true", "yes")
    is_tty = sys.stderr.isatty()
    use_colors = force_color or is_tty

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if use_colors:
        processors: list[structlog.types.Processor] = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    # Downloaded YAML goes to files; log output stays on stderr.
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

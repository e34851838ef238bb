"""
Structured logging for the plugin runtime.

structlog is configured once with stdlib integration so that records emitted
by third-party libraries (websockets, watchdog) share the same renderer.
"""

import logging
import sys

import structlog

_CONFIGURED = False


def configure_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """
    Configure structlog and stdlib logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Output format ("console" or "json")
    """
    global _CONFIGURED

    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.contextvars.merge_contextvars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    # stderr: stdout may be captured by the host
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=[handler], force=True)
    logging.captureWarnings(True)

    _CONFIGURED = True


def is_configured() -> bool:
    return _CONFIGURED


def get_logger(name: str, **context):
    """
    Get a structlog logger bound to static context.

    Example:
        logger = get_logger("plugin_runtime.session", plugin_ref_id="abc12")
        logger.info("plugin_booted", name="x", version="1.0.0")
    """
    return structlog.get_logger(name, **context)

import structlog
import logging
import sys
from typing import Any, Dict

def configure_logging(level: str = "INFO", json_output: bool = True):
    """
    Configures structural logging for the orchestrator.

    JSON output is meant for production log shipping; the console renderer
    is easier to read when running the CLI script locally.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

def get_logger(name: str = None):
    return structlog.get_logger(name)

def bind_context(context: Dict[str, Any]):
    """
    Binds context to all subsequent log calls of the current task.
    Example: bind_context({"history_id": "0001735689600000-000001-ab12cd34"})
    """
    structlog.contextvars.bind_contextvars(**context)

def unbind_context(*keys: str):
    structlog.contextvars.unbind_contextvars(*keys)

def clear_context():
    structlog.contextvars.clear_contextvars()

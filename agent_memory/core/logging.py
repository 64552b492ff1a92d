"""Structured logging for the memory engine.

Events are snake_case names with key/value context (``memories_added``,
``memories_accessed``, ``importance_parse_failed``). Engine operations run
inside :func:`agent_context`, so every event they emit carries the
``agent_id`` (and any other bound fields) without threading it through
each call.
"""

import logging
import sys
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator, List, Optional

import structlog
from structlog.types import EventDict, Processor

from agent_memory.core.config import AppConfig


def add_exception_info(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Copy the exception type and message into flat event fields."""
    exc_info = event_dict.get('exc_info')
    if exc_info is True:
        exc_info = sys.exc_info()
    if isinstance(exc_info, tuple) and exc_info[0] is not None:
        event_dict['exception_type'] = exc_info[0].__name__
        event_dict['exception_message'] = str(exc_info[1])
    return event_dict


def _processors(json_format: bool) -> List[Processor]:
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        add_exception_info,
        structlog.processors.format_exc_info,
    ]
    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    return processors


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    enable_console: bool = True,
) -> None:
    """Configure structlog on top of the stdlib root logger.

    Args:
        log_level: Minimum level name
        json_format: Render events as JSON lines instead of console text
        log_file: Optional rotating log file
        max_bytes: Rotation size of ``log_file``
        backup_count: Rotated files to keep
        enable_console: Also write to stdout
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=_processors(json_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: List[logging.Handler] = []
    if enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8',
        ))
    for handler in handlers:
        handler.setLevel(numeric_level)

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=handlers,
        force=True,
    )


def setup_logging_from_config(app: AppConfig) -> None:
    """Configure logging from ``APP_LOG_LEVEL``, ``APP_JSON_LOGS`` and ``APP_LOG_FILE``."""
    setup_logging(
        log_level=app.log_level,
        json_format=app.json_logs,
        log_file=app.log_file,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, typically for ``__name__``."""
    return structlog.get_logger(name)


@contextmanager
def agent_context(agent_id: str, **context: Any) -> Iterator[None]:
    """Bind ``agent_id`` (and extra fields) to every event logged inside the block.

    Examples:
        >>> with agent_context("agent:1", operation="access_memories"):
        ...     logger.info("memories_accessed", returned=3)
    """
    with structlog.contextvars.bound_contextvars(agent_id=agent_id, **context):
        yield


def log_exception(
    logger: structlog.stdlib.BoundLogger,
    event: str,
    exception: Exception,
    **context: Any
) -> None:
    """Log ``exception`` at error level with its type, message and traceback."""
    logger.error(
        event,
        exception_type=type(exception).__name__,
        exception_message=str(exception),
        exc_info=True,
        **context
    )

"""Structured logging setup using structlog.

Level filtering for the package's own events happens inside the structlog
processor chain rather than on the stdlib logger, so a single deployment run
can raise its own verbosity (``debug: true`` on a target) without flipping a
process-wide switch. Other stdlib loggers (paramiko) follow the root level.
"""

import logging
import sys
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Any, MutableMapping, Optional

import structlog
from structlog.typing import Processor

if TYPE_CHECKING:
    from fastdeploy.config.schemas import DeployTarget

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "exception": logging.ERROR,
    "critical": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}

# Key carrying a per-run minimum level on a bound logger.
RUN_LEVEL_KEY = "_min_level"

_default_level = logging.INFO


def filter_by_run_level(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Drop events below the bound run level, or the global level if unbound."""
    min_level = event_dict.pop(RUN_LEVEL_KEY, _default_level)
    if _LEVELS.get(method_name, logging.INFO) < min_level:
        raise structlog.DropEvent
    return event_dict


PACKAGE_LOGGER = "fastdeploy"


def _configure_structlog(json_format: bool = False) -> None:
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        filter_by_run_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    json_format: bool = False,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        json_format: Whether to use JSON format (True) or console format (False)
    """
    global _default_level
    _default_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        level=_default_level,
        stream=sys.stderr,
        force=True,
    )
    # Our own loggers pass everything on; filter_by_run_level decides.
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG)

    _configure_structlog(json_format)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        logging.getLogger().addHandler(file_handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given module name.

    Without a prior setup_logging() call, structlog gets the package's
    processor chain (run-level filtering included) and stdlib logging is
    left to the host application.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    if not structlog.is_configured():
        _configure_structlog()
    return structlog.get_logger(name)


def run_logger(target: "DeployTarget", name: str = "fastdeploy.run") -> structlog.stdlib.BoundLogger:
    """Get a logger bound to one deployment run.

    Every event carries the target's host, port and a short run id. When the
    target has ``debug`` set, this run logs at DEBUG regardless of the
    global level.

    Args:
        target: The target being deployed
        name: Logger name

    Returns:
        Bound logger for the run
    """
    bound = get_logger(name).bind(
        host=target.host,
        port=target.port,
        run_id=uuid.uuid4().hex[:8],
    )
    if target.debug:
        bound = bound.bind(**{RUN_LEVEL_KEY: logging.DEBUG})
    return bound


def bind_context(**kwargs: Any) -> None:
    """Bind context variables to all future log messages.

    Args:
        **kwargs: Key-value pairs to bind to logging context
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove context variables from future log messages.

    Args:
        *keys: Keys to remove from logging context
    """
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all context variables."""
    structlog.contextvars.clear_contextvars()

"""Structured logging for fastdeploy."""

from fastdeploy.telemetry.logger import (
    bind_context,
    clear_context,
    get_logger,
    run_logger,
    setup_logging,
    unbind_context,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "run_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
]

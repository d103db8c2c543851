"""
Logging setup with per-run context.

Every record carries the id of the render run that emitted it so the output
of one invocation can be followed through server, browser and capture steps.
"""

import logging
import sys
from contextvars import ContextVar

_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)


class RunContextFilter(logging.Filter):
    """Attach the current run id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _run_id.get() or "-"
        return True


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the CLI.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(RunContextFilter())
    handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(run_id)s | %(name)s | %(message)s")
    )
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a module."""
    return logging.getLogger(name)


def set_run_context(run_id: str) -> None:
    _run_id.set(run_id)


def clear_run_context() -> None:
    _run_id.set(None)


def get_run_id() -> str | None:
    return _run_id.get()

"""Structured logging helpers with run, phase and source file context.

Every record passing a root handler gets ``run_id``, ``phase`` and
``source_file`` attributes taken from context variables, so log lines from
deep inside the optimizer can be correlated with the run and the file being
processed.
"""

from __future__ import annotations

import contextvars
import logging
import uuid
from contextlib import contextmanager
from typing import ContextManager, Iterator

_UNSET = "-"

_RUN_ID_VAR: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default=_UNSET)
_PHASE_VAR: contextvars.ContextVar[str] = contextvars.ContextVar("phase", default=_UNSET)
_SOURCE_FILE_VAR: contextvars.ContextVar[str] = contextvars.ContextVar(
    "source_file", default=_UNSET
)

# Record attribute -> context variable
_CONTEXT_FIELDS: dict[str, contextvars.ContextVar[str]] = {
    "run_id": _RUN_ID_VAR,
    "phase": _PHASE_VAR,
    "source_file": _SOURCE_FILE_VAR,
}

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | run_id=%(run_id)s | phase=%(phase)s | "
    "file=%(source_file)s | %(name)s | %(message)s"
)


class _RunContextFilter(logging.Filter):
    """Copy the optimizer context variables onto each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name, var in _CONTEXT_FIELDS.items():
            setattr(record, name, var.get())
        return True


def configure_structured_logging(level: int = logging.INFO) -> None:
    """Configure root logging with the context-aware format.

    Existing root handlers are reformatted in place; otherwise a stream
    handler is installed via ``basicConfig``.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level)
        formatter = logging.Formatter(LOG_FORMAT)
        for handler in root_logger.handlers:
            handler.setFormatter(formatter)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT)

    for handler in root_logger.handlers:
        if not any(isinstance(f, _RunContextFilter) for f in handler.filters):
            handler.addFilter(_RunContextFilter())


def set_run_id(run_id: str | None = None) -> str:
    """Set the run id for subsequent logs, generating a UUID if omitted."""
    value = run_id or str(uuid.uuid4())
    _RUN_ID_VAR.set(value)
    return value


def get_run_id() -> str:
    return _RUN_ID_VAR.get()


def get_source_file() -> str:
    """Get the file currently being optimized, or ``-``."""
    return _SOURCE_FILE_VAR.get()


@contextmanager
def _context_scope(var: contextvars.ContextVar[str], value: str) -> Iterator[None]:
    token = var.set(value)
    try:
        yield
    finally:
        var.reset(token)


def phase_scope(phase: str) -> ContextManager[None]:
    """Tag logs emitted inside the block with a pipeline phase."""
    return _context_scope(_PHASE_VAR, phase)


def file_scope(path: str) -> ContextManager[None]:
    """Tag logs emitted inside the block with the file being optimized."""
    return _context_scope(_SOURCE_FILE_VAR, path)

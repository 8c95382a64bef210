"""Package logger with a per-call ID carried through ``contextvars``."""
from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar

_call_id: ContextVar[str | None] = ContextVar("assemblyhomology_call_id", default=None)

_FORMAT = "%(asctime)s %(levelname)s [%(call_id)s] %(name)s: %(message)s"


class _CallIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.call_id = _call_id.get() or "-"
        return True


def new_call_id() -> str:
    """Generate, set and return a fresh call ID for the current context."""
    call_id = uuid.uuid4().hex[:16]
    _call_id.set(call_id)
    return call_id


def set_call_id(call_id: str | None) -> None:
    _call_id.set(call_id)


def get_call_id() -> str | None:
    return _call_id.get()


def configure(level: str = "INFO") -> None:
    """Set the package log level. Safe to call more than once."""
    logger.setLevel(level.upper())


def _build_logger() -> logging.Logger:
    log = logging.getLogger("assemblyhomology")
    if not log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler.addFilter(_CallIDFilter())
        log.addHandler(handler)
        log.setLevel(logging.INFO)
    return log


logger = _build_logger()

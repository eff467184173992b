"""Logging setup: readable lines, JSON extras and per-step workflow context."""

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from app.config import settings

# Fields of the workflow step being executed. Tasks spawned inside a bound
# block inherit it.
workflow_context: ContextVar[dict[str, Any] | None] = ContextVar("workflow_context", default=None)


@contextmanager
def bind_workflow_context(**fields: Any) -> Iterator[None]:
    """Attach ``fields`` to every log line emitted inside the block."""
    merged = {**(workflow_context.get() or {}), **fields}
    token = workflow_context.set(merged)
    try:
        yield
    finally:
        workflow_context.reset(token)


class JSONExtrasFormatter(logging.Formatter):
    """Formatter that outputs a readable log line with extras as JSON.

    Output format:
        2026-01-05 05:00:12 | INFO     | app.services.phases.preparation | Leads fetched {"step": "phase1_prep", "count": 45}

    Bound workflow context comes first in the extras; explicit ``extra=``
    keys win on collision.
    """

    RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {
        "asctime",
        "message",
    }

    def _extras(self, record: logging.LogRecord) -> dict[str, Any]:
        extras = dict(workflow_context.get() or {})
        extras.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in self.RESERVED_ATTRS and not key.startswith("_")
        )
        return extras

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        parts = [self.formatTime(record, self.datefmt), f"{record.levelname:<8}", record.name, record.message]
        line = " | ".join(parts)

        extras = self._extras(record)
        if extras:
            try:
                line += " " + json.dumps(extras, default=str, ensure_ascii=False)
            except (TypeError, ValueError):
                pass

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            line += "\n" + record.exc_text
        return line


def setup_logging(level: str | int | None = None) -> None:
    """Configure the 'app' logger and quiet chatty client libraries."""
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger("app")
    logger.setLevel(level)

    # Request lines from the Newsdata and Tavily clients are noise at INFO
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    # Called from both the API lifespan and the worker entrypoint
    if logger.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONExtrasFormatter(datefmt="%Y-%m-%d %H:%M:%S"))

    logger.addHandler(handler)
    logger.propagate = False

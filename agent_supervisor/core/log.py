"""Structured logging on top of the standard library ``logging`` module."""
from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .correlation import get_correlation_id

CONTEXT_ATTR = "context"
HANDLER_NAME = "agent_supervisor"


class StructuredLogger:
    """Logger accepting a message plus a free-form context map.

    A base context (service name, agent id, ...) is bound at construction and
    merged into every record. The merged map is attached to the record as
    ``record.context`` so formatters and test captures can read it.
    """

    def __init__(self, name: str, **context: Any) -> None:
        self._logger = logging.getLogger(name)
        self._context: Dict[str, Any] = dict(context)

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context)

    def child(self, **context: Any) -> StructuredLogger:
        """Return a logger sharing this one's name with extra bound context."""
        merged = {**self._context, **context}
        return StructuredLogger(self._logger.name, **merged)

    def debug(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.INFO, message, context)

    def warn(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.WARNING, message, context)

    warning = warn

    def error(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.ERROR, message, context)

    def _log(self, level: int, message: str, context: Optional[Mapping[str, Any]]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged = {**self._context, **(context or {})}
        correlation_id = get_correlation_id()
        if correlation_id and "correlation_id" not in merged:
            merged["correlation_id"] = correlation_id
        self._logger.log(level, message, extra={CONTEXT_ATTR: merged})


class PerformanceLogger:
    """Time one operation and log how it ended.

    Logs ``Starting operation: <name>`` at debug on creation, then either
    ``Completed operation`` or ``Failed operation`` with a ``duration`` in
    milliseconds rounded to two decimals.
    """

    def __init__(
        self,
        logger: StructuredLogger,
        operation: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._logger = logger
        self._operation = operation
        self._context: Dict[str, Any] = dict(context or {})
        self._started = time.perf_counter()
        self._logger.debug(f"Starting operation: {operation}", self._context)

    @property
    def duration_ms(self) -> float:
        return round((time.perf_counter() - self._started) * 1000, 2)

    def complete(self, context: Optional[Mapping[str, Any]] = None) -> None:
        self._logger.info(
            f"Completed operation: {self._operation}",
            {**self._context, **(context or {}), "duration": self.duration_ms},
        )

    def fail(self, error: BaseException, context: Optional[Mapping[str, Any]] = None) -> None:
        self._logger.error(
            f"Failed operation: {self._operation}",
            {
                **self._context,
                **(context or {}),
                "duration": self.duration_ms,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(getattr(record, CONTEXT_ATTR, None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ContextFormatter(logging.Formatter):
    """Plain-text formatter appending the structured context as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, CONTEXT_ATTR, None)
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            line = f"{line} {pairs}"
        return line


def configure_logging(level: str = "info", json_output: bool = False) -> None:
    """Install (or replace) the supervisor stream handler on the root logger.

    Handlers installed by other code, such as test capture handlers, are kept.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ContextFormatter("%(asctime)s [%(levelname)s] [%(name)s] %(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

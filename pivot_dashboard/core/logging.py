"""Logging helpers and failure counters for the dashboard service.

``configure_logging`` sets the root logger up to emit one compact JSON object
per record with the ``level``, ``name`` and ``message`` fields, which is what
the hosting platform ingests.

``ErrorMetrics`` keeps per-exception-type failure counts for backend refreshes
so the snapshot endpoint and logs can show how often the prediction backend
has been unreachable.
"""

from __future__ import annotations

import json
import logging
import time
from collections import Counter, defaultdict
from contextlib import contextmanager
from typing import Any, Dict, Optional


class _JsonFormatter(logging.Formatter):
    """Format log records as compact JSON strings."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - short
        payload = {
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure the root logger to emit JSON formatted records.

    Parameters
    ----------
    level:
        The minimum logging level. Defaults to ``logging.INFO``.
    """

    handler = logging.StreamHandler()
    handler.setFormatter(_JsonFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


class ErrorMetrics:
    """Failure counters keyed by error type."""

    MAX_TIMESTAMPS = 100

    def __init__(self):
        self.errors: Counter = Counter()
        self.error_timestamps: Dict[str, list] = defaultdict(list)
        self.last_context: Dict[str, Dict[str, Any]] = {}

    def record_error(self, error_type: str, context: Optional[Dict[str, Any]] = None) -> None:
        """Record an error occurrence."""
        self.errors[error_type] += 1
        stamps = self.error_timestamps[error_type]
        stamps.append(time.time())
        if len(stamps) > self.MAX_TIMESTAMPS:
            del stamps[: len(stamps) - self.MAX_TIMESTAMPS]
        if context:
            self.last_context[error_type] = context

    def get_metrics(self) -> Dict[str, Any]:
        """Get current error metrics."""
        now = time.time()
        return {
            "error_counts": dict(self.errors),
            "recent_errors": {
                error_type: len([t for t in stamps if now - t < 3600])
                for error_type, stamps in self.error_timestamps.items()
                if stamps and now - stamps[-1] < 3600
            },
            "last_context": {k: dict(v) for k, v in self.last_context.items()},
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self.errors.clear()
        self.error_timestamps.clear()
        self.last_context.clear()


_error_metrics = ErrorMetrics()


def get_error_metrics() -> ErrorMetrics:
    """Get the global error metrics instance."""
    return _error_metrics


@contextmanager
def error_context(operation: str, **context):
    """Record the type of any exception escaping the block, then re-raise it."""
    start_time = time.time()
    try:
        yield
    except Exception as e:
        reason = getattr(e, "reason", None)
        error_type = f"{type(e).__name__}:{reason}" if reason else type(e).__name__
        get_error_metrics().record_error(error_type, {
            "operation": operation,
            "duration": time.time() - start_time,
            **context,
        })
        raise


logger = logging.getLogger(__name__)


__all__ = ["configure_logging", "logger", "ErrorMetrics", "get_error_metrics", "error_context"]

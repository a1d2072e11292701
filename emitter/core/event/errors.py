"""
Error handling helpers for the emitter dispatcher.

Purpose
-------
Provides the single place where a failing listener is logged and counted
before its exception is handed back to the caller of the dispatch.

Design Decisions
----------------
- **Record, then propagate**: this helper never swallows the exception; the
  scheduler re-raises it unchanged after calling this function.
- **Full error context**: logs event name, listener label, dispatch id and
  stack trace.

Dependencies
------------
- emitter.core.event.types (Listener)
- emitter.core.event.metrics (EventMetricsRecorder)
- logging.Logger (for structured logging)
"""

from __future__ import annotations

from logging import Logger
from typing import Optional

from emitter.core.event.context import Event
from emitter.core.event.metrics import EventMetricsRecorder
from emitter.core.event.types import Listener


def handle_listener_error(
    *,
    logger: Logger,
    event: Event,
    listener: Listener,
    exc: BaseException,
    metrics: Optional[EventMetricsRecorder],
) -> None:
    """
    Log a listener failure and update metrics.

    Parameters
    ----------
    logger:
        Logger instance to use for error logging.
    event:
        The Event whose dispatch failed.
    listener:
        The Listener that raised the exception.
    exc:
        The exception that was raised.
    metrics:
        Optional EventMetricsRecorder to update. If None, metrics are skipped.

    Examples
    --------
    >>> try:
    ...     listener.invoke(event, args)
    ... except Exception as exc:
    ...     handle_listener_error(
    ...         logger=logger,
    ...         event=event,
    ...         listener=listener,
    ...         exc=exc,
    ...         metrics=metrics_recorder,
    ...     )
    ...     raise
    """
    if metrics is not None:
        metrics.record_error(event.name)

    logger.error(
        "Emitter listener error",
        extra={
            "event_name": event.name,
            "dispatch_id": event.dispatch_id,
            "listener": listener.label,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=(type(exc), exc, exc.__traceback__),
    )

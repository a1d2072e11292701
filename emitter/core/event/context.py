"""
Dispatch context for the emitter.

Purpose
-------
Defines `Event`, the object every listener receives as its first argument,
and the helper that binds a dispatch to the structured logging context.

Responsibilities
----------------
- Carry the event name and the emitting owner (read-only)
- Carry the cooperative cancellation flag
- Tag every log line written during a dispatch with event_name, emitter_id
  and dispatch_id

Design Decisions
----------------
- **One Event per emit**: all listeners of a pass share the same instance,
  so a cancel() in one listener is visible to the dispatcher before the next.
- **Monotonic cancellation**: there is no way to un-cancel an Event.
- **Log context via ContextVar**: tasks created while a dispatch is resuming
  inherit the context, so suspended listeners keep their log fields.

Dependencies
------------
- emitter.core.logging.logger (LogContext, generate_correlation_id)
"""

from __future__ import annotations

from typing import Any, Optional

from emitter.core.logging.logger import LogContext, generate_correlation_id


class Event:
    """
    Dispatch context shared by all listeners of one emit.

    Attributes
    ----------
    name:
        The emitted event name.
    source:
        The emitter that raised the event (also available as `context`).
    canceled:
        True once any listener called `cancel()` (also `is_canceled`).
    dispatch_id:
        Short random id used to correlate log lines of one pass.

    Examples
    --------
    >>> def stop_here(event):
    ...     if event.name == "job.done":
    ...         event.cancel()
    """

    __slots__ = ("_name", "_source", "_canceled", "_dispatch_id")

    def __init__(
        self,
        name: str,
        source: Any,
        *,
        dispatch_id: Optional[str] = None,
    ) -> None:
        self._name = name
        self._source = source
        self._canceled = False
        self._dispatch_id = dispatch_id or generate_correlation_id()

    @property
    def name(self) -> str:
        return self._name

    @property
    def source(self) -> Any:
        return self._source

    @property
    def context(self) -> Any:
        return self._source

    @property
    def canceled(self) -> bool:
        return self._canceled

    @property
    def is_canceled(self) -> bool:
        return self._canceled

    @property
    def dispatch_id(self) -> str:
        return self._dispatch_id

    def cancel(self) -> None:
        """Stop the pass after the current listener returns."""
        self._canceled = True

    def __repr__(self) -> str:
        return (
            f"Event(name={self._name!r}, canceled={self._canceled}, "
            f"dispatch_id={self._dispatch_id!r})"
        )


def dispatch_log_context(event: Event, emitter_id: str) -> LogContext:
    """
    Build the LogContext for one dispatch.

    Parameters
    ----------
    event:
        The Event being dispatched.
    emitter_id:
        Identifier of the emitting owner, as used in its own log lines.

    Examples
    --------
    >>> with dispatch_log_context(event, "Emitter-1a2b3c4d"):
    ...     logger.debug("dispatching")  # carries event_name and dispatch_id
    """
    return LogContext(
        event_name=event.name,
        emitter_id=emitter_id,
        dispatch_id=event.dispatch_id,
        component="emitter",
        operation="dispatch",
    )

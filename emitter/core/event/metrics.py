"""
Emitter metrics tracking.

Purpose
-------
Provides lightweight, in-memory counters for emitter activity, enabling
observability without external dependencies.

Responsibilities
----------------
- Track emits by event name
- Track listener errors by event name
- Track cancellations by event name
- Track listener invocations
- Provide immutable snapshots for external consumption

Design Decisions
----------------
- **Immutable snapshots**: EventMetrics is frozen to prevent accidental mutation
- **Mutable recorder**: EventMetricsRecorder tracks live counters
- **Listener count from the registry**: the count is passed in when the
  snapshot is taken, so it can never drift from the registry's contents
- **Simple counters**: Uses defaultdict(int) for efficient counting

Dependencies
------------
None (pure Python stdlib)
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class EventMetrics:
    """
    Immutable snapshot of emitter metrics.

    Attributes
    ----------
    events_emitted:
        Mapping of event names to emit counts.
    listener_errors:
        Mapping of event names to error counts.
    cancellations:
        Mapping of event names to the number of passes stopped by cancel().
    listener_invocations:
        Total number of listener calls that completed.
    total_listeners:
        Listener count of the emitter at snapshot time.

    Examples
    --------
    >>> metrics = EventMetrics(
    ...     events_emitted={"user.created": 40},
    ...     listener_errors={"user.created": 1},
    ...     total_listeners=3,
    ... )
    >>> metrics.get_summary()["error_rate"]
    2.5
    """

    events_emitted: dict[str, int] = field(default_factory=dict)
    listener_errors: dict[str, int] = field(default_factory=dict)
    cancellations: dict[str, int] = field(default_factory=dict)
    listener_invocations: int = 0
    total_listeners: int = 0

    def get_summary(self) -> dict[str, Any]:
        """
        Generate a formatted summary of metrics.

        Returns
        -------
        dict[str, Any]:
            Summary containing:
            - total_events_emitted: Sum of all emits
            - events_by_type: Dict mapping event names to counts
            - total_errors: Sum of all errors
            - errors_by_event: Dict mapping event names to error counts
            - total_cancellations: Sum of all canceled passes
            - listener_invocations: Completed listener calls
            - total_listeners: Listener count at snapshot time
            - error_rate: Percentage of emits that had errors (0-100)
        """
        total_events = sum(self.events_emitted.values())
        total_errors = sum(self.listener_errors.values())

        error_rate = (total_errors / max(1, total_events)) * 100.0

        return {
            "total_events_emitted": total_events,
            "events_by_type": dict(self.events_emitted),
            "total_errors": total_errors,
            "errors_by_event": dict(self.listener_errors),
            "total_cancellations": sum(self.cancellations.values()),
            "listener_invocations": self.listener_invocations,
            "total_listeners": self.total_listeners,
            "error_rate": round(error_rate, 2),
        }


class EventMetricsRecorder:
    """
    Mutable metrics recorder for one emitter.

    Thread Safety
    -------------
    Not thread-safe. Designed for single-threaded asyncio usage.

    Examples
    --------
    >>> recorder = EventMetricsRecorder()
    >>> recorder.record_emit("user.created")
    >>> recorder.record_invocation()
    >>> recorder.snapshot(total_listeners=1).listener_invocations
    1
    """

    def __init__(self) -> None:
        """Initialize empty metrics recorder."""
        self._events_emitted: defaultdict[str, int] = defaultdict(int)
        self._listener_errors: defaultdict[str, int] = defaultdict(int)
        self._cancellations: defaultdict[str, int] = defaultdict(int)
        self._listener_invocations: int = 0

    def record_emit(self, event_name: str) -> None:
        self._events_emitted[event_name] += 1

    def record_error(self, event_name: str) -> None:
        self._listener_errors[event_name] += 1

    def record_cancellation(self, event_name: str) -> None:
        self._cancellations[event_name] += 1

    def record_invocation(self) -> None:
        self._listener_invocations += 1

    def reset(self) -> None:
        """Zero every counter."""
        self._events_emitted.clear()
        self._listener_errors.clear()
        self._cancellations.clear()
        self._listener_invocations = 0

    def snapshot(self, *, total_listeners: int = 0) -> EventMetrics:
        """
        Return an immutable snapshot of current metrics.

        Creates new dict instances to prevent accidental mutation leaks.

        Parameters
        ----------
        total_listeners:
            Current listener count of the owning emitter.
        """
        return EventMetrics(
            events_emitted=dict(self._events_emitted),
            listener_errors=dict(self._listener_errors),
            cancellations=dict(self._cancellations),
            listener_invocations=self._listener_invocations,
            total_listeners=total_listeners,
        )

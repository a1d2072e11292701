"""
Event system for the emitter.

Purpose
-------
Provides the `Emitter` class, the dispatch `Event`, the identifier types and
the process-wide broadcast emitter.
"""

from .bus import Emitter, get_broadcast
from .context import Event
from .metrics import EventMetrics, EventMetricsRecorder
from .scheduler import DispatchScheduler
from .types import (
    CallbackType,
    ExactName,
    Identifier,
    IdentifierList,
    Listener,
    NamePattern,
    parse_identifier,
)

__all__ = [
    "broadcast",
    "get_broadcast",
    "Emitter",
    "Event",
    "EventMetrics",
    "EventMetricsRecorder",
    "DispatchScheduler",
    "CallbackType",
    "ExactName",
    "NamePattern",
    "IdentifierList",
    "Identifier",
    "Listener",
    "parse_identifier",
]


def __getattr__(name: str):
    # The broadcast emitter is built on first access, so importing the
    # package reads no configuration.
    if name == "broadcast":
        return get_broadcast()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

"""
Emitter: in-process pub/sub with exact names, name patterns and a broadcast
channel.

Purpose
-------
Provides the `Emitter` class that objects embed (by holding one, or by
subclassing it) to gain an eventing capability, and the process-wide
broadcast emitter that hears every event raised by any other emitter.

Responsibilities
----------------
- Register listeners for exact names, regular-expression patterns, or lists
  of either (`on`, `once`, `limit`)
- Unregister listeners, keeping exact names and patterns apart (`off`)
- Dispatch events to own exact listeners, broadcast listeners and own
  pattern listeners in one ordered pass (`emit`, `publish`)
- Answer "who would hear this event" (`listener`)
- Metrics collection and introspection
- LogContext integration for structured logging

Design Decisions
----------------
- **Chainable owner**: every subscription and `emit` call returns the
  emitter itself, including calls ignored because of invalid arguments.
- **Silent no-ops**: invalid identifiers, callbacks or limits are logged at
  debug level and otherwise ignored; they never raise.
- **Snapshot before sort**: each emit copies the matching listeners before
  ordering them, so listeners added or removed during a pass do not affect it.
- **Stable merge across registries**: own exact listeners, then the broadcast
  listeners, then own pattern listeners are concatenated and stably sorted by
  their order keys. Keys from different registries are independent, so equal
  keys keep this concatenation order.
- **Injected broadcast**: each emitter receives the broadcast emitter at
  construction; tests can pass an isolated one.
- **Config-driven defaults**: metrics toggle and listener warning threshold
  come from ConfigManager unless given explicitly.

Dependencies
------------
- emitter.core.logging.logger (structured logging)
- emitter.core.config.manager (ConfigManager for defaults)
- emitter.core.validation (InputValidator)
- emitter.core.event.types (identifiers, Listener, CallbackType)
- emitter.core.event.registry (ListenerRegistry)
- emitter.core.event.scheduler (DispatchScheduler)
- emitter.core.event.metrics (EventMetricsRecorder, EventMetrics)
- emitter.core.event.context (Event, dispatch_log_context)
"""

from __future__ import annotations

import threading
from operator import attrgetter
from typing import Any, Optional

from emitter.core.config.errors import ConfigError
from emitter.core.config.manager import ConfigManager
from emitter.core.event.context import Event, dispatch_log_context
from emitter.core.event.metrics import EventMetrics, EventMetricsRecorder
from emitter.core.event.registry import ListenerRegistry
from emitter.core.event.scheduler import DispatchScheduler
from emitter.core.event.types import (
    CallbackType,
    Identifier,
    IdentifierList,
    Listener,
    NamePattern,
    parse_identifier,
)
from emitter.core.logging.logger import generate_correlation_id, get_logger
from emitter.core.validation import InputValidator

logger = get_logger(__name__)

_order_key = attrgetter("order")


class Emitter:
    """
    Event emitter with exact-name and pattern listeners.

    Listeners are called as `callback(event, *args)` where `event` is the
    `Event` of the current pass. A listener may return an awaitable; the next
    listener only starts once it has settled.

    Thread Safety
    -------------
    Designed for single-threaded use. All methods must be called from the
    same thread, and from the same event loop when listeners are async.

    Examples
    --------
    >>> emitter = Emitter()
    >>> emitter.on("user.created", lambda event, user: print(user))
    >>> emitter.on(re.compile(r"^user\\."), audit, prepend=True)
    >>> emitter.emit("user.created", {"id": 1})

    Delegation works by subclassing:

    >>> class Job(Emitter):
    ...     def finish(self):
    ...         self.emit("job.done", self)
    """

    def __init__(
        self,
        broadcast: Optional[Emitter] = None,
        *,
        scheduler: Optional[DispatchScheduler] = None,
        metrics: Optional[EventMetricsRecorder] = None,
        enable_metrics: Optional[bool] = None,
        max_listeners: Optional[int] = None,
        is_broadcast: bool = False,
    ) -> None:
        """
        Initialize an Emitter.

        Parameters
        ----------
        broadcast:
            Broadcast emitter consulted on every emit. Defaults to the
            process-wide one from `get_broadcast()`.
        scheduler:
            Optional DispatchScheduler instance. Creates default if None.
        metrics:
            Optional EventMetricsRecorder. Creates default if None.
        enable_metrics:
            Whether to collect metrics. Uses `core.event.metrics_enabled` if None.
        max_listeners:
            Warn when one event name or the pattern list grows beyond this
            many listeners; 0 disables the warning. Uses
            `core.event.max_listeners` if None.
        is_broadcast:
            Marks the process-wide broadcast emitter, which never consults a
            broadcast channel itself.
        """
        self._is_broadcast = is_broadcast
        if is_broadcast:
            self._broadcast: Optional[Emitter] = None
        else:
            self._broadcast = broadcast if broadcast is not None else get_broadcast()

        self._registry = ListenerRegistry()
        self._scheduler = scheduler or DispatchScheduler()
        self._metrics = metrics or EventMetricsRecorder()
        self._metrics_enabled = self._load_setting(
            "core.event.metrics_enabled", enable_metrics, True
        )
        self._max_listeners = self._load_setting(
            "core.event.max_listeners", max_listeners, 0
        )
        self._emitter_id = (
            "broadcast"
            if is_broadcast
            else f"{type(self).__name__}-{generate_correlation_id()}"
        )

        logger.debug(
            "Emitter initialized",
            extra={
                "emitter_id": self._emitter_id,
                "metrics_enabled": self._metrics_enabled,
                "max_listeners": self._max_listeners,
            },
        )

    # ------------------------------------------------------------------ #
    # Configuration Loading
    # ------------------------------------------------------------------ #

    @staticmethod
    def _load_setting(key: str, override: Any, default: Any) -> Any:
        """
        Resolve a setting with fallback chain: override → config → default.
        """
        if override is not None:
            return override

        try:
            if isinstance(default, bool):
                return ConfigManager.get_bool(key, default)
            return ConfigManager.get_int(key, default)
        except ConfigError as exc:
            logger.warning(
                "Failed to load emitter setting from config, using default",
                extra={"config_key": key, "default_value": default, "error": str(exc)},
            )
            return default

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    def on(
        self,
        identifier: Any,
        callback: CallbackType,
        prepend: bool = False,
        limit: Optional[int] = None,
    ) -> Emitter:
        """
        Subscribe a callback to an event name, a pattern, or a list of either.

        Parameters
        ----------
        identifier:
            `str` for an exact name, compiled `re.Pattern` for a pattern, or a
            list/tuple of identifiers (expanded recursively).
        callback:
            Sync or async callable taking `(event, *args)`.
        prepend:
            If True the listener runs before every listener registered so far.
        limit:
            Invocations before automatic removal; None keeps it forever.

        Returns
        -------
        Emitter:
            This emitter, also when the call was ignored.

        Examples
        --------
        >>> emitter.on("user.created", send_welcome)
        >>> emitter.on([re.compile("^order"), "refund"], track, limit=3)
        """
        parsed = parse_identifier(identifier)
        if (
            parsed is None
            or not InputValidator.is_callback(callback)
            or not InputValidator.is_limit(limit)
        ):
            return self

        self._subscribe(parsed, callback, bool(prepend), limit)
        return self

    def once(
        self,
        identifier: Any,
        callback: CallbackType,
        prepend: bool = False,
    ) -> Emitter:
        """Subscribe a callback that is removed after one successful call."""
        return self.on(identifier, callback, prepend, 1)

    def limit(
        self,
        identifier: Any,
        limit: int,
        callback: CallbackType,
        prepend: bool = False,
    ) -> Emitter:
        """Subscribe a callback that is removed after `limit` successful calls."""
        if limit is None:
            # None would mean unbounded, which is `on`, not `limit`.
            return self
        return self.on(identifier, callback, prepend, limit)

    def off(
        self,
        identifier: Any,
        callback: Optional[CallbackType] = None,
    ) -> Emitter:
        """
        Unsubscribe listeners.

        Without a callback every listener of the name (or of the pattern) is
        removed; with one only the entries using that callback are. Exact
        names and patterns never affect each other, even when a pattern's
        source text equals a name.

        Examples
        --------
        >>> emitter.off("user.created", send_welcome)
        >>> emitter.off(re.compile("^order"))
        """
        parsed = parse_identifier(identifier)
        if parsed is None or not InputValidator.is_optional_callback(callback):
            return self

        self._unsubscribe(parsed, callback)
        return self

    def clear(self) -> Emitter:
        """
        Remove all listeners of this emitter.

        The broadcast channel is left untouched unless this is the broadcast
        emitter.
        """
        total = self._registry.clear_all()

        logger.info(
            "Emitter: cleared all listeners",
            extra={"emitter_id": self._emitter_id, "previous_listener_count": total},
        )
        return self

    def _subscribe(
        self,
        identifier: Identifier,
        callback: CallbackType,
        prepend: bool,
        limit: Optional[int],
    ) -> None:
        if isinstance(identifier, IdentifierList):
            for item in identifier:
                self._subscribe(item, callback, prepend, limit)
            return

        listener = self._registry.add(
            identifier, callback, prepend=prepend, limit=limit
        )

        logger.debug(
            "Emitter: subscribed listener",
            extra={
                "emitter_id": self._emitter_id,
                "listener": listener.label,
                "order": listener.order,
                "limit": limit,
            },
        )

        self._check_max_listeners(listener)

    def _unsubscribe(
        self,
        identifier: Identifier,
        callback: Optional[CallbackType],
    ) -> None:
        if isinstance(identifier, IdentifierList):
            for item in identifier:
                self._unsubscribe(item, callback)
            return

        removed = self._registry.remove(identifier, callback)

        if removed:
            logger.debug(
                "Emitter: unsubscribed listeners",
                extra={
                    "emitter_id": self._emitter_id,
                    "identifier": str(identifier),
                    "removed": removed,
                },
            )

    def _check_max_listeners(self, listener: Listener) -> None:
        if self._max_listeners <= 0:
            return

        if isinstance(listener.identifier, NamePattern):
            count = self._registry.pattern_count()
        else:
            count = self._registry.count_by_name(listener.identifier.name)

        # Warn once, when the threshold is first crossed.
        if count == self._max_listeners + 1:
            logger.warning(
                "Emitter: possible listener leak",
                extra={
                    "emitter_id": self._emitter_id,
                    "identifier": str(listener.identifier),
                    "listener_count": count,
                    "max_listeners": self._max_listeners,
                },
            )

    # ------------------------------------------------------------------ #
    # Dispatch API
    # ------------------------------------------------------------------ #

    def emit(self, name: str, *args: Any) -> Emitter:
        """
        Raise an event.

        Synchronous listeners run before this call returns. If a listener
        returns an awaitable while an event loop is running, the rest of the
        pass continues in a background task; use `publish()` or `drain()` to
        wait for it. Without a running loop the pass is finished here.

        Parameters
        ----------
        name:
            The event name. Non-string names are ignored.
        *args:
            Passed to every listener after the Event.

        Returns
        -------
        Emitter:
            This emitter.

        Raises
        ------
        Exception
            Whatever a listener raised on this call's stack; the rest of the
            pass is skipped.

        Examples
        --------
        >>> emitter.emit("user.created", user).emit("audit.flush")
        """
        prepared = self._prepare(name)
        if prepared is None:
            return self

        event, listeners = prepared
        with dispatch_log_context(event, self._emitter_id):
            self._scheduler.run(
                event=event,
                listeners=listeners,
                args=args,
                metrics=self._active_metrics(),
                logger=logger,
            )
        return self

    async def publish(self, name: str, *args: Any) -> Emitter:
        """
        Raise an event and wait until every listener of the pass has settled.

        Examples
        --------
        >>> await emitter.publish("user.created", user)
        """
        prepared = self._prepare(name)
        if prepared is None:
            return self

        event, listeners = prepared
        async with dispatch_log_context(event, self._emitter_id):
            await self._scheduler.run_async(
                event=event,
                listeners=listeners,
                args=args,
                metrics=self._active_metrics(),
                logger=logger,
            )
        return self

    async def drain(self) -> None:
        """
        Wait for passes that `emit()` left running in the background.

        Raises the first listener failure of those passes, if any.
        """
        await self._scheduler.drain()

    def _prepare(self, name: Any) -> Optional[tuple[Event, list[Listener]]]:
        if not InputValidator.is_string(name):
            logger.debug(
                "Emitter: ignoring emit with non-string name",
                extra={"emitter_id": self._emitter_id, "raw_value": repr(name)},
            )
            return None

        if self._metrics_enabled:
            self._metrics.record_emit(name)

        event = Event(name, self)
        listeners = self._resolve(name)

        logger.debug(
            "Emitter: emitting event",
            extra={
                "event_name": name,
                "emitter_id": self._emitter_id,
                "dispatch_id": event.dispatch_id,
                "listener_count": len(listeners),
            },
        )

        if not listeners:
            return None
        return event, listeners

    def _collect(self, name: str) -> list[Listener]:
        """Own exact listeners, broadcast listeners, own pattern listeners."""
        candidates = self._registry.exact_listeners(name)
        if self._broadcast is not None:
            candidates.extend(self._broadcast._collect(name))
        candidates.extend(self._registry.pattern_listeners(name))
        return candidates

    def _resolve(self, name: str) -> list[Listener]:
        return sorted(self._collect(name), key=_order_key)

    def _active_metrics(self) -> Optional[EventMetricsRecorder]:
        return self._metrics if self._metrics_enabled else None

    # ------------------------------------------------------------------ #
    # Metrics & Introspection
    # ------------------------------------------------------------------ #

    def listener(self, name: Any) -> list[CallbackType]:
        """
        Return the callbacks an emit of `name` would call, in call order.

        Never raises; a non-string name yields an empty list.

        Examples
        --------
        >>> emitter.on("a", f).on("a", g, prepend=True).listener("a")
        [g, f]
        """
        if not InputValidator.is_string(name):
            return []
        return [lst.callback for lst in self._resolve(name)]

    def get_metrics(self) -> Optional[EventMetrics]:
        """
        Return an immutable snapshot of current metrics, or None if disabled.
        """
        if not self._metrics_enabled:
            return None
        return self._metrics.snapshot(total_listeners=self._registry.total_count())

    def get_metrics_summary(self) -> dict[str, Any]:
        """Summary dict of `get_metrics()`; empty when metrics are disabled."""
        metrics = self.get_metrics()
        if metrics is None:
            return {}
        return metrics.get_summary()

    def get_listener_count(self, name: Optional[str] = None) -> int:
        """
        Get the number of listeners registered on this emitter.

        Parameters
        ----------
        name:
            If provided, counts own exact and pattern listeners that would
            receive this event. Broadcast listeners are not included.
        """
        if name is not None:
            return self._registry.count_for(name)
        return self._registry.total_count()

    def get_all_events(self) -> list[str]:
        """Sorted event names and `/pattern/` sources with listeners."""
        return self._registry.event_keys()

    def get_pending_count(self) -> int:
        """Number of passes still running in the background."""
        return self._scheduler.get_pending_count()

    @property
    def is_broadcast(self) -> bool:
        return self._is_broadcast

    @property
    def emitter_id(self) -> str:
        return self._emitter_id

    # ------------------------------------------------------------------ #
    # Configuration Toggles
    # ------------------------------------------------------------------ #

    def enable_metrics(self) -> None:
        self._metrics_enabled = True
        logger.info("Emitter: metrics enabled", extra={"emitter_id": self._emitter_id})

    def disable_metrics(self) -> None:
        self._metrics_enabled = False
        logger.info("Emitter: metrics disabled", extra={"emitter_id": self._emitter_id})

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} id={self._emitter_id!r} "
            f"listeners={self._registry.total_count()}>"
        )


# ---------------------------------------------------------------------- #
# Broadcast channel
# ---------------------------------------------------------------------- #

_broadcast: Optional[Emitter] = None
_broadcast_lock = threading.Lock()


def get_broadcast() -> Emitter:
    """
    Return the process-wide broadcast emitter, creating it on first use.

    Listeners registered on it hear every event emitted by any other
    emitter, with `event.source` set to that emitter.

    Examples
    --------
    >>> get_broadcast().on(re.compile(".*"), trace_everything)
    """
    global _broadcast
    if _broadcast is None:
        with _broadcast_lock:
            if _broadcast is None:
                _broadcast = Emitter(is_broadcast=True)
    return _broadcast


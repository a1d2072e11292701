"""
ListenerRegistry: storage and lookup for emitter listeners.

Purpose
-------
Holds the listeners of one emitter: exact-name listeners keyed by name, a
single list of pattern listeners, and the ordering sequence that issues
their keys.

Responsibilities
----------------
- Store exact-name listeners (e.g., "user.created")
- Store pattern listeners (e.g., re.compile("^user\\."))
- Issue unique ordering keys for appended and prepended listeners
- Remove listeners by name or pattern, optionally narrowed to one callback
- Return snapshots of the listeners matching an event name
- Provide introspection (counts, all event keys)

Design Decisions
----------------
- **No async/await**: registry methods are synchronous because asyncio's event
  loop is single-threaded, making list mutations atomic between awaits.
- **Two-sided ordering sequence**: appends count up from 0, prepends count
  down from -1, so no key is ever reused.
- **Separation of exact/pattern**: removing "a" never touches a pattern whose
  source text is "a", and removing a pattern never touches the name "a".
- **Filter, never truncate**: removal rebuilds the list without the removed
  entries so that the order of survivors is unchanged.
- **Snapshots**: lookups return new lists, so a dispatch in progress is not
  affected by listeners added or removed during it.

Dependencies
------------
- emitter.core.event.types (Listener, ExactName, NamePattern)
- emitter.core.event.router (EventRouter for matching)
"""

from __future__ import annotations

from typing import Optional, Union

from emitter.core.event.router import EventRouter
from emitter.core.event.types import CallbackType, ExactName, Listener, NamePattern


class OrderSequence:
    """
    Issues unique ordering keys.

    Examples
    --------
    >>> seq = OrderSequence()
    >>> seq.append_key(), seq.append_key(), seq.prepend_key(), seq.prepend_key()
    (0, 1, -1, -2)
    """

    __slots__ = ("_low", "_high")

    def __init__(self) -> None:
        self._low = 0
        self._high = -1

    def append_key(self) -> int:
        self._high += 1
        return self._high

    def prepend_key(self) -> int:
        self._low -= 1
        return self._low

    def next_key(self, *, prepend: bool) -> int:
        return self.prepend_key() if prepend else self.append_key()


class ListenerRegistry:
    """
    Registry for emitter listeners (exact and pattern).

    Thread Safety
    -------------
    Not thread-safe. Designed for single-threaded asyncio usage where all
    modifications occur on the same event loop.

    Examples
    --------
    >>> registry = ListenerRegistry()
    >>> listener = registry.add(ExactName("user.created"), on_created)
    >>> [l.callback for l in registry.exact_listeners("user.created")]
    [<function on_created ...>]
    >>> registry.remove(ExactName("user.created"))
    1
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._by_name: dict[str, list[Listener]] = {}
        self._patterns: list[Listener] = []
        self._sequence = OrderSequence()
        self._router = EventRouter()

    # ------------------------------------------------------------------ #
    # Modification
    # ------------------------------------------------------------------ #

    def add(
        self,
        identifier: Union[ExactName, NamePattern],
        callback: CallbackType,
        *,
        prepend: bool = False,
        limit: Optional[int] = None,
    ) -> Listener:
        """
        Register a callback for an exact name or a pattern.

        Parameters
        ----------
        identifier:
            ExactName or NamePattern.
        callback:
            Callable invoked as `callback(event, *args)`.
        prepend:
            If True the listener sorts before every listener issued so far.
        limit:
            Number of invocations before automatic removal; None is unbounded.

        Returns
        -------
        Listener:
            The stored record.
        """
        listener = Listener.create(
            identifier,
            callback,
            order=self._sequence.next_key(prepend=prepend),
            limit=limit,
            registry=self,
        )

        if isinstance(identifier, NamePattern):
            self._patterns.append(listener)
        else:
            self._by_name.setdefault(identifier.name, []).append(listener)

        return listener

    def remove(
        self,
        identifier: Union[ExactName, NamePattern],
        callback: Optional[CallbackType] = None,
    ) -> int:
        """
        Remove listeners for an exact name or a pattern.

        Parameters
        ----------
        identifier:
            ExactName or NamePattern used during subscription.
        callback:
            If given, only entries with this callback are removed.

        Returns
        -------
        int:
            Number of listeners removed.
        """
        if isinstance(identifier, NamePattern):
            before = len(self._patterns)
            self._patterns = [
                lst
                for lst in self._patterns
                if not (
                    EventRouter.same_pattern(lst.identifier, identifier)
                    and (callback is None or lst.callback == callback)
                )
            ]
            return before - len(self._patterns)

        listeners = self._by_name.get(identifier.name)
        if listeners is None:
            return 0

        if callback is None:
            del self._by_name[identifier.name]
            return len(listeners)

        kept = [lst for lst in listeners if lst.callback != callback]
        removed = len(listeners) - len(kept)

        if kept:
            self._by_name[identifier.name] = kept
        else:
            del self._by_name[identifier.name]

        return removed

    def discard(self, listener: Listener) -> bool:
        """
        Remove one specific record, used when its invocation limit runs out.

        Removal uses the record's identifier and callback so that every entry
        with the same (identifier, callback) pair goes with it.
        """
        return self.remove(listener.identifier, listener.callback) > 0

    def clear_all(self) -> int:
        """
        Remove all listeners and return previous total count.

        The ordering sequence is kept, so keys stay unique for the lifetime
        of the registry.
        """
        total = self.total_count()
        self._by_name.clear()
        self._patterns.clear()
        return total

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def exact_listeners(self, event_name: str) -> list[Listener]:
        """Snapshot of the listeners registered for exactly `event_name`."""
        return list(self._by_name.get(event_name, ()))

    def pattern_listeners(self, event_name: str) -> list[Listener]:
        """Snapshot of the pattern listeners matching `event_name`."""
        return [
            lst
            for lst in self._patterns
            if self._router.matches(event_name, lst.identifier)
        ]

    def matching(self, event_name: str) -> list[Listener]:
        """Exact listeners followed by matching pattern listeners."""
        return self.exact_listeners(event_name) + self.pattern_listeners(event_name)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def count_for(self, event_name: str) -> int:
        """Count listeners of this registry that would receive `event_name`."""
        return len(self.matching(event_name))

    def count_by_name(self, event_name: str) -> int:
        """Count exact-name listeners only."""
        return len(self._by_name.get(event_name, ()))

    def pattern_count(self) -> int:
        return len(self._patterns)

    def total_count(self) -> int:
        """Return total number of registered listeners."""
        total = sum(len(listeners) for listeners in self._by_name.values())
        total += len(self._patterns)
        return total

    def event_keys(self) -> list[str]:
        """
        Return sorted list of all event names and pattern sources.

        Patterns are rendered as `/source/` so they cannot be mistaken for
        an exact name.
        """
        keys: list[str] = list(self._by_name.keys())
        keys.extend(str(lst.identifier) for lst in self._patterns)
        return sorted(set(keys))

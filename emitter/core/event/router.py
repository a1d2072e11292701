"""
EventRouter: event-name matching for the emitter.

Purpose
-------
Decides whether an event name is selected by a single identifier, so the
registry and the dispatcher share one definition of "matches".

Supported Identifiers
---------------------
- ExactName:   "user.created" → matches only "user.created"
- NamePattern: re.compile("^user\\.") → matches "user.created", "user.deleted"
- NamePattern: re.compile("created") → matches "user.created", "created.at"

Notes
-----
- Pattern matching uses `re.Pattern.search`, so a pattern is not anchored
  unless it says so (`^`, `$`).
- Matching is case-sensitive unless the pattern carries `re.IGNORECASE`.
- IdentifierList is never stored in a registry and never matches directly.

Dependencies
------------
None (pure Python stdlib)
"""

from __future__ import annotations

from typing import Any

from emitter.core.event.types import ExactName, NamePattern


class EventRouter:
    """
    Stateless matcher for event names.

    Examples
    --------
    >>> router = EventRouter()
    >>> router.matches("user.created", ExactName("user.created"))
    True
    >>> router.matches("user.created", NamePattern(re.compile("^user\\.")))
    True
    >>> router.matches("order.created", NamePattern(re.compile("^user\\.")))
    False
    """

    def matches(self, event_name: str, identifier: Any) -> bool:
        """
        Check if an event name is selected by an identifier.

        Parameters
        ----------
        event_name:
            The event name being emitted.
        identifier:
            An ExactName or NamePattern.

        Returns
        -------
        bool:
            True if the identifier selects the event name.
        """
        if isinstance(identifier, ExactName):
            return identifier.name == event_name

        if isinstance(identifier, NamePattern):
            return identifier.pattern.search(event_name) is not None

        return False

    @staticmethod
    def same_pattern(left: NamePattern, right: NamePattern) -> bool:
        """Patterns are the same when their source text and flags agree."""
        return left.key == right.key

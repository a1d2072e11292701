"""
Core Event Types for the emitter.

Purpose
-------
Provides the fundamental type definitions for the event system: the three
identifier variants, listener callbacks, and the listener record stored in a
registry.

Responsibilities
----------------
- Define the closed Identifier variant (ExactName | NamePattern | IdentifierList)
- Normalize raw subscription arguments (str, re.Pattern, list/tuple) into it
- Define CallbackType for sync and async callbacks
- Define the Listener record and its factory

Design Decisions
----------------
- **Frozen identifier dataclasses**: identifiers are values; two NamePattern
  instances built from equal patterns compare equal through `key`.
- **Mutable Listener with slots**: `remaining` counts down during dispatch,
  so the record cannot be frozen.
- **`remaining is None` means unbounded**: the dispatcher never retires such
  a listener.

Dependencies
------------
- emitter.core.validation (InputValidator)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

from emitter.core.validation import InputValidator

if TYPE_CHECKING:
    from emitter.core.event.context import Event
    from emitter.core.event.registry import ListenerRegistry


# Callbacks receive the dispatch Event followed by the emit arguments and may
# return an awaitable, which is awaited before the next listener runs.
CallbackType = Union[
    Callable[..., Any],
    Callable[..., Awaitable[Any]],
]


@dataclass(frozen=True, slots=True)
class ExactName:
    """Selects listeners registered for exactly one event name."""

    name: str

    @property
    def key(self) -> str:
        return self.name

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class NamePattern:
    """
    Selects event names matched by a regular expression.

    Identity is the pattern's source text plus its flags, never the compiled
    object, so `off(re.compile("a"))` removes what `on(re.compile("a"))` added.

    Examples
    --------
    >>> NamePattern(re.compile("^user\\.")).key == NamePattern(re.compile("^user\\.")).key
    True
    """

    pattern: re.Pattern

    @property
    def key(self) -> tuple[str, int]:
        return (self.pattern.pattern, self.pattern.flags)

    def __str__(self) -> str:
        return f"/{self.pattern.pattern}/"


@dataclass(frozen=True, slots=True)
class IdentifierList:
    """An ordered group of identifiers; operations apply element-wise."""

    items: tuple[Identifier, ...] = ()

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


Identifier = Union[ExactName, NamePattern, IdentifierList]


def parse_identifier(value: Any) -> Optional[Identifier]:
    """
    Normalize a raw subscription argument into an Identifier.

    Strings become ExactName, compiled text patterns become NamePattern, and
    lists/tuples become IdentifierList (recursively, with no depth limit).
    Elements of a sequence that are not identifiers are dropped, matching the
    element-wise no-op behaviour of the subscription API. Returns None when
    `value` itself is not an identifier.

    Examples
    --------
    >>> parse_identifier("user.created")
    ExactName(name='user.created')
    >>> parse_identifier(42) is None
    True
    """
    if isinstance(value, (ExactName, NamePattern, IdentifierList)):
        return value

    if not InputValidator.is_identifier(value):
        return None

    if InputValidator.is_string(value):
        return ExactName(value)

    if InputValidator.is_expression(value):
        return NamePattern(value)

    items = []
    for item in value:
        parsed = parse_identifier(item)
        if parsed is not None:
            items.append(parsed)
    return IdentifierList(tuple(items))


@dataclass(slots=True, eq=False)
class Listener:
    """
    One registered callback.

    Attributes
    ----------
    identifier:
        ExactName or NamePattern the callback was registered for.
    callback:
        Sync or async callable invoked as `callback(event, *args)`.
    order:
        Ordering key, unique within the owning registry.
    remaining:
        Invocations left before automatic removal; None means unbounded.
    registry:
        The registry that owns this record (its own or the broadcast one).
    label:
        Human-readable name used in logs.
    """

    identifier: Union[ExactName, NamePattern]
    callback: CallbackType
    order: int
    remaining: Optional[int] = None
    registry: Optional[ListenerRegistry] = field(default=None, repr=False)
    label: str = ""

    @classmethod
    def create(
        cls,
        identifier: Union[ExactName, NamePattern],
        callback: CallbackType,
        *,
        order: int,
        limit: Optional[int],
        registry: Optional[ListenerRegistry],
    ) -> Listener:
        """Factory that derives a log label from callback metadata."""
        module = getattr(callback, "__module__", None) or "unknown"
        qualname = getattr(
            callback, "__qualname__", getattr(callback, "__name__", type(callback).__name__)
        )
        return cls(
            identifier=identifier,
            callback=callback,
            order=order,
            remaining=limit,
            registry=registry,
            label=f"{module}.{qualname}@{identifier}",
        )

    @property
    def is_bounded(self) -> bool:
        return self.remaining is not None

    def invoke(self, event: Event, args: tuple[Any, ...]) -> Any:
        return self.callback(event, *args)

"""
Argument validation for the emitter subscription API.

Purpose
-------
Centralize the predicates that decide whether a subscription argument is
usable. The subscription API treats an invalid argument as a silent no-op, so
these validators never raise: they return booleans and leave a debug-level
trace of every rejection.

Responsibilities
----------------
- Recognize event names, name patterns and identifier sequences
- Recognize callables usable as listener callbacks
- Recognize invocation limits

Observability
-------------
Every rejection is logged at debug level with:
  - field_name
  - raw_value (repr)
  - reason

Dependencies
------------
- emitter.core.logging.logger.get_logger
"""

from __future__ import annotations

import re
from typing import Any

from emitter.core.logging.logger import get_logger

logger = get_logger(__name__)


def _log_rejection(field_name: str, value: Any, reason: str) -> bool:
    logger.debug(
        "Argument rejected",
        extra={
            "field_name": field_name,
            "raw_value": repr(value),
            "reason": reason,
        },
    )
    return False


class InputValidator:
    """
    Stateless predicates for subscription arguments.

    All methods return True/False and never raise.
    """

    @staticmethod
    def is_string(value: Any) -> bool:
        return isinstance(value, str)

    @staticmethod
    def is_expression(value: Any) -> bool:
        """A compiled text pattern (bytes patterns cannot match event names)."""
        return isinstance(value, re.Pattern) and isinstance(value.pattern, str)

    @staticmethod
    def is_sequence(value: Any) -> bool:
        """Lists and tuples; strings are names, not sequences."""
        return isinstance(value, (list, tuple))

    @classmethod
    def is_identifier(cls, value: Any) -> bool:
        if cls.is_string(value) or cls.is_expression(value) or cls.is_sequence(value):
            return True
        return _log_rejection("identifier", value, "not a name, pattern or sequence")

    @staticmethod
    def is_callback(value: Any) -> bool:
        if callable(value):
            return True
        return _log_rejection("callback", value, "not callable")

    @staticmethod
    def is_optional_callback(value: Any) -> bool:
        if value is None or callable(value):
            return True
        return _log_rejection("callback", value, "given but not callable")

    @staticmethod
    def is_limit(value: Any) -> bool:
        """None (unbounded) or a positive integer; bools are rejected."""
        if value is None:
            return True
        if isinstance(value, bool) or not isinstance(value, int):
            return _log_rejection("limit", value, "not an integer")
        if value < 1:
            return _log_rejection("limit", value, "must be at least 1")
        return True
